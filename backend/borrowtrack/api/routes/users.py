"""User management (admin only)."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_db, require_admin
from borrowtrack.core.audit import AuditLog
from borrowtrack.core.exceptions import BusinessError, InvalidInputError
from borrowtrack.schemas.user import UserCreate, UserRecord, UserResponse, UserUpdate
from borrowtrack.services import user_service
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    return sorted(user_service.get_users(db, cache), key=lambda u: u.name.lower())


@router.get("/{email}", response_model=UserResponse)
def get_user(
    email: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    user = user_service.get_user_by_email(db, cache, email)
    if not user:
        raise BusinessError.not_found("User", reason=email)
    return user


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    try:
        user = user_service.add_user(db, cache, data)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)

    AuditLog.log_action("create", "user", user.email, current_user.email, changes={"role": user.role})
    return user


@router.patch("/{email}", response_model=UserResponse)
def update_user(
    email: str,
    data: UserUpdate,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    try:
        user = user_service.update_user(db, cache, email, data)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    if not user:
        raise BusinessError.not_found("User", reason=email)

    AuditLog.log_action("update", "user", user.email, current_user.email,
                        changes=data.model_dump(exclude_unset=True))
    return user


@router.delete("/{email}")
def delete_user(
    email: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Delete a user. Their borrow records stay for the history."""
    if email.strip().lower() == current_user.email:
        raise BusinessError.bad_request("You cannot delete your own account")
    if not user_service.delete_user(db, cache, email):
        raise BusinessError.not_found("User", reason=email)

    AuditLog.log_action("delete", "user", email, current_user.email)
    return {"message": "User deleted successfully", "email": email}
