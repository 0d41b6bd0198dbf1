"""Users: email is the identity, passwords are stored hashed."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import DuplicateIdentityError, InvalidInputError
from borrowtrack.core.security import get_password_hash, verify_password
from borrowtrack.schemas.user import ProfileUpdate, UserCreate, UserRecord, UserUpdate
from borrowtrack.services.barcode import generate_user_barcode
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.reconcile import read_one, read_through, with_fallback, write_through
from borrowtrack.services.remote_store import UserRemote

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password(password: str) -> None:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters", "password"
        )


def get_users(db: Session, cache: LocalCache) -> List[UserRecord]:
    return read_through(lambda: UserRemote(db).all(), cache.users, "get users")


def get_user_by_email(db: Session, cache: LocalCache, email: str) -> Optional[UserRecord]:
    email = _normalize_email(email)
    return read_one(lambda: UserRemote(db).get(email), cache.users, email, f"get user {email}")


def user_exists(db: Session, cache: LocalCache, email: str) -> bool:
    return with_fallback(
        lambda: UserRemote(db).exists(email),
        lambda: cache.users.find(email) is not None,
        f"check user {email}",
    )


def add_user(db: Session, cache: LocalCache, data: UserCreate) -> UserRecord:
    """
    Create a user.

    Raises DuplicateIdentityError (and writes nothing) if the email is taken,
    InvalidInputError if the password is too short.
    """
    email = _normalize_email(data.email)
    _check_password(data.password)
    if user_exists(db, cache, email):
        raise DuplicateIdentityError("User with this email already exists", "email")

    user = UserRecord(
        email=email,
        password=get_password_hash(data.password),
        role=data.role,
        name=data.name,
        nip=data.nip or "",
        birth_date=data.birth_date,
        address=data.address or "",
        created_at=datetime.now(timezone.utc),
        barcode=generate_user_barcode(email),
    )

    def local():
        cache.users.upsert(user)
        return user

    return write_through(lambda: UserRemote(db).insert(user), cache.users.upsert, local, f"add user {email}")


def _user_patch(data: Union[UserUpdate, ProfileUpdate]) -> Dict[str, Any]:
    patch = {}
    for field, value in data.model_dump(exclude_unset=True).items():
        if field in ("nip", "address"):
            patch[field] = value or ""
        elif field == "birth_date":
            patch[field] = value
        elif value is not None:
            patch[field] = value
    if "name" in patch and not patch["name"].strip():
        raise InvalidInputError("Name cannot be empty", "name")
    if "password" in patch:
        _check_password(patch["password"])
        patch["password"] = get_password_hash(patch["password"])
    return patch


def update_user(db: Session, cache: LocalCache, email: str, data: Union[UserUpdate, ProfileUpdate]) -> Optional[UserRecord]:
    """Partial update. Returns None for an unknown user."""
    email = _normalize_email(email)
    patch = _user_patch(data)

    def local():
        current = cache.users.find(email)
        if current is None:
            return None
        updated = UserRecord.model_validate({**current.model_dump(), **patch})
        cache.users.upsert(updated)
        return updated

    def mirror(user):
        if user is not None:
            cache.users.upsert(user)

    return write_through(
        lambda: UserRemote(db).update(email, patch), mirror, local, f"update user {email}",
        missing=lambda user: user is None,
    )


def update_user_profile(db: Session, cache: LocalCache, email: str, data: ProfileUpdate) -> Optional[UserRecord]:
    """Self-service edit; the role cannot be changed this way."""
    return update_user(db, cache, email, data)


def delete_user(db: Session, cache: LocalCache, email: str) -> bool:
    """Hard delete. The user's borrow records are left in place."""
    email = _normalize_email(email)
    return write_through(
        lambda: UserRemote(db).delete(email),
        lambda _deleted: cache.users.remove(email),
        lambda: cache.users.remove(email),
        f"delete user {email}",
        missing=lambda deleted: not deleted,
    )


def authenticate_user(db: Session, cache: LocalCache, email: str, password: str) -> Optional[UserRecord]:
    user = get_user_by_email(db, cache, email)
    if user is None or not verify_password(password, user.password):
        return None
    return user
