"""Main application file for the Interview Catalog API service."""

import logging
from contextlib import asynccontextmanager

from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi import Depends, FastAPI

from interview_catalog.utils.config import get_settings
from interview_catalog.routers import admin, auth, companies, problems, users
from interview_catalog.middleware.rate_limiter import RateLimitMiddleware
from interview_catalog.services.catalog_service import CatalogService, get_catalog_service
from interview_catalog.services.entity_store import COMPANIES
from interview_catalog.utils.errors import CatalogError

logger = logging.getLogger(__name__)

# Load settings
settings = get_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan events.
    """
    logger.info("Interview Catalog API starting up (store: %s)", settings.store_backend)
    service = get_catalog_service()
    try:
        await service.connect()
    except CatalogError as e:
        # Keep serving; /health reports degraded until the store is reachable
        logger.error("Failed to connect to the %s store at startup: %s", settings.store_backend, e)

    yield

    service.disconnect()
    logger.info("Interview Catalog API shutting down")


app = FastAPI(
    title="Interview Catalog API",
    description="Companies, their interview problems, and per-user progress",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
app.add_middleware(
    RateLimitMiddleware, requests_per_minute=settings.rate_limit_per_minute
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

# Include routers
app.include_router(companies.router, prefix="/api/v1", tags=["companies"])
app.include_router(problems.router, prefix="/api/v1", tags=["problems"])
app.include_router(users.router, prefix="/api/v1", tags=["users"])
app.include_router(admin.router, prefix="/api/v1", tags=["admin"])
app.include_router(auth.router, prefix="/api/v1", tags=["auth"])


@app.get("/")
async def root():
    """Root endpoint providing basic info about the API."""
    return {
        "message": "Interview Catalog API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check(service: CatalogService = Depends(get_catalog_service)):
    """Health check endpoint."""
    try:
        await service.store.list(COMPANIES, limit=1)
        healthy = True
    except CatalogError as e:
        logger.warning("Health check failed: %s", e)
        healthy = False
    return {
        "status": "healthy" if healthy else "degraded",
        "database": settings.store_backend,
        "cache_entries": len(service.cache),
    }
