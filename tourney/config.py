"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

API_V1_PREFIX = "/api/v1"

WALLET_BUCKETS = ("deposit", "winning", "bonus")


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    log_level: str = "DEBUG"

    # Database - required, read from the environment
    database_url: str = Field(
        ...,
        description="Database connection URL (required)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections",
    )
    db_echo: bool = False

    # JWT issued by the identity provider
    jwt_secret_key: str = Field(
        ...,
        description="JWT secret key (required, minimum 32 characters)",
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Join settlement
    join_max_attempts: int = Field(
        default=5,
        ge=1,
        description="Optimistic transaction attempts before reporting contention",
    )
    join_retry_base_delay: float = Field(
        default=0.05,
        ge=0,
        description="Back-off multiplier in seconds between conflicting attempts",
    )
    join_retry_max_delay: float = Field(
        default=1.0,
        ge=0,
        description="Upper bound for a single back-off sleep in seconds",
    )
    default_join_fee_priority: list[str] = Field(
        default_factory=lambda: ["winning", "bonus", "deposit"],
        description="Spend order used when no settings row or override exists",
    )

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Validate JWT secret key length."""
        if len(v) < 32:
            raise ValueError(
                "jwt_secret_key must be at least 32 characters long"
            )
        return v

    @field_validator("default_join_fee_priority")
    @classmethod
    def validate_priority(cls, v: list[str]) -> list[str]:
        """Priority must name every wallet bucket exactly once."""
        if sorted(v) != sorted(WALLET_BUCKETS):
            raise ValueError(
                f"default_join_fee_priority must be a permutation of {WALLET_BUCKETS}"
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
