"""Authentication dependencies and the current-user endpoint."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from interview_catalog.services.auth_service import AuthService, get_auth_service
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service

router = APIRouter()
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def _payload_for(token: str, auth_service: AuthService) -> Dict[str, Any]:
    payload = auth_service.decode_token(token)
    if not payload.get("user_id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return payload


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Dependency to get current authenticated user from JWT token."""
    return _payload_for(credentials.credentials, auth_service)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous requests get None."""
    if credentials is None:
        return None
    return _payload_for(credentials.credentials, auth_service)


async def require_admin(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
) -> Dict[str, Any]:
    """Dependency that only lets admins through."""
    if not await service.user_data.is_admin(current_user["user_id"]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


@router.get("/auth/me")
async def get_me(
    current_user: Dict[str, Any] = Depends(get_current_user),
    service: CatalogService = Depends(get_catalog_service),
):
    """Get current user info (requires authentication)."""
    user_id = current_user["user_id"]
    return {"userId": user_id, "isAdmin": await service.user_data.is_admin(user_id)}
