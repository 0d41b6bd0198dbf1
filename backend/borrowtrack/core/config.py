"""Application configuration.

Environment variables override all defaults.
SECRET_KEY must be set in .env for production; startup fails fast without it.
"""

import os
from pathlib import Path
from typing import List


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _csv_env(name: str, default: str) -> List[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"

    # Remote store (the hosted relational database of record)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./borrowtrack.db")
    # Create missing tables on startup. Hosted databases are normally set up once
    # from GET /setup/schema.sql, so this is off unless asked for.
    AUTO_CREATE_TABLES: bool = _bool_env("AUTO_CREATE_TABLES", "true" if DEBUG else "false")
    MIGRATE_LOCAL_ON_STARTUP: bool = _bool_env("MIGRATE_LOCAL_ON_STARTUP", "true")

    # Local cache mirror: one JSON file per entity collection
    LOCAL_CACHE_DIR: str = os.getenv("LOCAL_CACHE_DIR", "./.borrowtrack-cache")

    # JWT
    SECRET_KEY: str = os.getenv("SECRET_KEY", None)
    if not SECRET_KEY:
        if ENVIRONMENT == "production":
            raise ValueError(
                "SECRET_KEY must be set in production environment. "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        import warnings
        warnings.warn(
            "SECRET_KEY not set in environment. Using development default. "
            "Set SECRET_KEY in .env before deploying.",
            RuntimeWarning
        )
        SECRET_KEY = "development-only-weak-default-change-in-production"

    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

    # Cookies
    AUTH_COOKIE_NAME: str = "borrowtrack_token"
    SECURE_COOKIES: bool = ENVIRONMENT == "production"
    SAME_SITE_COOKIE: str = "strict"

    # CORS / hosts
    CORS_ORIGINS: List[str] = _csv_env(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )
    ALLOWED_HOSTS: List[str] = _csv_env("ALLOWED_HOSTS", "localhost,127.0.0.1")

    # Server (run_server.py)
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Password policy
    MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "8"))

    # Borrowing
    DEFAULT_BORROW_DURATION_DAYS: int = 7
    RECENT_RETURNS_DAYS: int = 7


settings = Settings()
