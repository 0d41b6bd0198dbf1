"""FastAPI dependencies: DB session, local cache and current user from JWT.

SECURITY: Supports JWT from:
1. Authorization header (for API clients)
2. httpOnly cookie (for web frontend)
"""
from typing import Generator, Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from borrowtrack.core.audit import AuditLog
from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import BusinessError
from borrowtrack.core.security import decode_access_token
from borrowtrack.db.session import SessionLocal
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.user_service import get_user_by_email

security = HTTPBearer(auto_error=False)

_cache: Optional[LocalCache] = None


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache() -> LocalCache:
    """The process-wide local cache mirror."""
    global _cache
    if _cache is None:
        _cache = LocalCache.at(settings.LOCAL_CACHE_DIR)
    return _cache


def get_current_user_email(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract user email from JWT token.
    Header takes precedence over cookie.
    """
    token = None

    if credentials:
        token = credentials.credentials
    elif settings.AUTH_COOKIE_NAME in request.cookies:
        token = request.cookies[settings.AUTH_COOKIE_NAME]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    sub = decode_access_token(token)
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return sub


def get_current_user(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    email: str = Depends(get_current_user_email),
) -> UserRecord:
    """Load current user (remote store, or local cache when it is down)."""
    user = get_user_by_email(db, cache, email)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_admin(request: Request, current_user: UserRecord = Depends(get_current_user)) -> UserRecord:
    if current_user.role != "admin":
        AuditLog.log_access_denied(
            request.method, request.url.path, "-", current_user.email, "Admin role required"
        )
        raise BusinessError.forbidden(f"{current_user.email} is not an admin")
    return current_user
