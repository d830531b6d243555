"""Application configuration settings using Pydantic."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings
from pydantic import Field, ValidationError

from interview_catalog.utils.errors import ConfigurationError


class Settings(BaseSettings):
    """Application configuration settings."""

    # OpenAI Configuration
    openai_api_key: Optional[str] = Field(None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o-mini", validation_alias="OPENAI_MODEL")
    openai_max_tokens: int = Field(800, validation_alias="OPENAI_MAX_TOKENS")
    openai_temperature: float = Field(0.3, validation_alias="OPENAI_TEMPERATURE")

    # API Configuration
    api_host: str = Field("0.0.0.0", validation_alias="API_HOST")
    api_port: int = Field(8000, validation_alias="API_PORT")
    debug: bool = Field(False, validation_alias="DEBUG")

    # CORS Configuration
    allowed_origins: list[str] = Field(
        ["*"],
        validation_alias="ALLOWED_ORIGINS",
    )

    # Trusted Hosts Configuration
    trusted_hosts: list[str] = Field(["*"], validation_alias="TRUSTED_HOSTS")

    # Rate Limiting
    rate_limit_per_minute: int = Field(60, validation_alias="RATE_LIMIT_PER_MINUTE")

    # JWT Configuration
    jwt_secret_key: str = Field(..., validation_alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    jwt_access_token_expire_hours: int = Field(
        24, validation_alias="JWT_ACCESS_TOKEN_EXPIRE_HOURS"
    )

    # Store Configuration
    store_backend: Literal["mongo", "memory"] = Field(
        "mongo", validation_alias="STORE_BACKEND"
    )
    mongodb_uri: Optional[str] = Field(None, validation_alias="MONGODB_URI")
    mongo_dbname: str = Field("interview_catalog", validation_alias="MONGO_DBNAME")
    mongo_timeout_ms: int = Field(5000, validation_alias="MONGO_TIMEOUT_MS")

    # Catalog behaviour
    default_page_size: int = Field(9, validation_alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(50, validation_alias="MAX_PAGE_SIZE")
    cache_ttl_seconds: float = Field(3600.0, validation_alias="CACHE_TTL_SECONDS")
    top_tag_count: int = Field(7, validation_alias="TOP_TAG_COUNT")
    revalidation_token: Optional[str] = Field(None, validation_alias="REVALIDATION_TOKEN")

    # Client-side AI cooldown
    cooldown_seconds: float = Field(300.0, validation_alias="COOLDOWN_SECONDS")
    cooldown_state_path: str = Field(
        "~/.interview_catalog/cooldown.json", validation_alias="COOLDOWN_STATE_PATH"
    )

    class Config:
        """Pydantic configuration to load from .env file."""

        env_file = ".env"
        case_sensitive = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        s = Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        # Fail closed on missing required envs
        raise ConfigurationError(f"Configuration error: {e}") from e
    return s
