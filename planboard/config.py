from __future__ import annotations

import os

APP_VERSION = "1.4.0"

# Known placeholder secrets that must never reach production
_DEFAULT_SECRET_KEYS = frozenset(
    {
        "change-me-in-production",
        "dev-secret-key-change-in-production",
    }
)


class Settings:
    PROJECT_NAME: str = "Planboard"
    API_V1_PREFIX: str = "/api/v1"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "planboard")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "planboard")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "planboard")
    # Full URL override (takes precedence over the POSTGRES_* parts)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "20"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
    JWT_ISSUER: str = "planboard"
    JWT_AUDIENCE: str = "planboard"

    ALLOWED_ORIGINS: list[str] = [
        o.strip()
        for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    ]

    # Lifetime of the client-side permission snapshot cache
    PERMISSION_CACHE_TTL_SECONDS: int = int(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "300"))

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
