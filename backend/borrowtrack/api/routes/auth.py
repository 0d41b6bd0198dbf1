"""Auth: register, login (cookie + bearer token), logout, own profile.

SECURITY FEATURES:
- Salted password hashing (werkzeug)
- Minimum password length
- httpOnly, Secure, SameSite cookies
- Generic login error to prevent user enumeration
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_current_user, get_db
from borrowtrack.core.audit import AuditLog
from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import BusinessError, InvalidInputError
from borrowtrack.core.security import create_access_token
from borrowtrack.schemas.user import ProfileUpdate, Token, UserCreate, UserLogin, UserRecord, UserRegister, UserResponse
from borrowtrack.services import user_service
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/register", response_model=UserResponse, status_code=201)
def register(
    data: UserRegister,
    request: Request,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
):
    """Self-registration. New accounts always get the "user" role."""
    try:
        user = user_service.add_user(db, cache, UserCreate(**data.model_dump(), role="user"))
    except InvalidInputError as e:
        AuditLog.log_authentication("register", data.email, _client_ip(request), False, reason=str(e))
        raise BusinessError.from_invalid_input(e)

    AuditLog.log_authentication("register", user.email, _client_ip(request), True)
    return user


@router.post("/login", response_model=Token)
def login(
    data: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
):
    """
    Login and set token in httpOnly cookie.

    The token is also returned in the body for API clients.
    """
    user = user_service.authenticate_user(db, cache, data.email, data.password)
    if not user:
        AuditLog.log_authentication("failed_login", data.email, _client_ip(request), False,
                                    reason="Invalid email or password")
        raise BusinessError.unauthorized(f"failed login for {data.email}")

    token = create_access_token(subject=user.email, role=user.role)

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite=settings.SAME_SITE_COOKIE,
        domain=None,
    )
    AuditLog.log_authentication("login", user.email, _client_ip(request), True)
    return Token(access_token=token)


@router.post("/logout")
def logout(request: Request, response: Response, current_user: UserRecord = Depends(get_current_user)):
    """
    Logout by clearing httpOnly cookie.
    """
    response.delete_cookie(
        key=settings.AUTH_COOKIE_NAME,
        secure=settings.SECURE_COOKIES,
        httponly=True,
        samesite=settings.SAME_SITE_COOKIE,
    )
    AuditLog.log_authentication("logout", current_user.email, _client_ip(request), True)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def me(current_user: UserRecord = Depends(get_current_user)):
    """Get current authenticated user."""
    return current_user


@router.put("/me", response_model=UserResponse)
def update_me(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Update own profile (name, NIP, birth date, address, password)."""
    try:
        user = user_service.update_user_profile(db, cache, current_user.email, data)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    if not user:
        raise BusinessError.not_found("User")

    AuditLog.log_action("update", "user", user.email, current_user.email,
                        changes=data.model_dump(exclude_unset=True))
    return user
