"""Borrowing: borrow, return, history.

Admins see every record; users see and return only their own.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_current_user, get_db
from borrowtrack.core.audit import AuditLog
from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import BusinessError, InvalidInputError
from borrowtrack.schemas.borrow import BorrowRecordData, BorrowRequest
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services import borrow_service
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


def _is_admin(user: UserRecord) -> bool:
    return user.role == "admin"


def _newest_first(records: List[BorrowRecordData]) -> List[BorrowRecordData]:
    return sorted(records, key=lambda r: r.borrow_date, reverse=True)


@router.get("", response_model=List[BorrowRecordData])
def list_borrow_records(
    status: Optional[str] = Query(None, description="active | returned"),
    user_email: Optional[str] = Query(None, description="admin only"),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Borrowing history. Non-admins always get their own records."""
    if not _is_admin(current_user):
        user_email = current_user.email

    try:
        if status:
            borrow_service.check_status(status)
        if user_email:
            records = borrow_service.get_borrow_records_by_user(db, cache, user_email)
            if status:
                records = [r for r in records if r.status == status]
        elif status:
            records = borrow_service.get_borrow_records_by_status(db, cache, status)
        else:
            records = borrow_service.get_borrow_records(db, cache)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    return _newest_first(records)


@router.get("/active", response_model=List[BorrowRecordData])
def list_active(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Items currently out. Non-admins get their own active records."""
    if _is_admin(current_user):
        records = borrow_service.get_active_borrowings(db, cache)
    else:
        records = borrow_service.get_active_borrow_records_by_user(db, cache, current_user.email)
    return _newest_first(records)


@router.get("/recent-returns", response_model=List[BorrowRecordData])
def list_recent_returns(
    days: int = Query(settings.RECENT_RETURNS_DAYS, ge=1, le=366),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    records = borrow_service.get_recent_returns(db, cache, days)
    if not _is_admin(current_user):
        records = [r for r in records if r.user_email == current_user.email]
    return records


@router.get("/{record_id}", response_model=BorrowRecordData)
def get_borrow_record(
    record_id: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    record = borrow_service.get_borrow_record(db, cache, record_id)
    # Same 404 for "missing" and "not yours" so ids cannot be enumerated
    if not record or (not _is_admin(current_user) and record.user_email != current_user.email):
        raise BusinessError.not_found("Borrow record", reason=record_id)
    return record


@router.post("", response_model=BorrowRecordData, status_code=201)
def borrow(
    data: BorrowRequest,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Borrow units of an item. Admins may borrow on behalf of another user."""
    borrower = current_user.email
    if data.user_email and data.user_email.lower() != current_user.email:
        if not _is_admin(current_user):
            AuditLog.log_access_denied("borrow", "inventory_item", data.item_id, current_user.email,
                                       "Borrowing for another user")
            raise BusinessError.forbidden(f"{current_user.email} tried to borrow for {data.user_email}")
        borrower = data.user_email.lower()

    try:
        record = borrow_service.borrow_item(
            db, cache, borrower, data.item_id, data.quantity, data.estimated_duration
        )
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    if not record:
        raise BusinessError.not_found("Inventory item", reason=data.item_id)

    AuditLog.log_action("borrow", "borrow_record", record.id, current_user.email,
                        changes={"item_id": record.item_id, "quantity": record.quantity,
                                 "user_email": record.user_email})
    return record


@router.post("/{record_id}/return", response_model=BorrowRecordData)
def return_item(
    record_id: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Return an active borrow record. Unknown or already returned records give 404."""
    if not _is_admin(current_user):
        existing = borrow_service.get_borrow_record(db, cache, record_id)
        if existing and existing.user_email != current_user.email:
            AuditLog.log_access_denied("return", "borrow_record", record_id, current_user.email,
                                       "Not record owner")
            raise BusinessError.not_found("Borrow record", reason=record_id)

    record = borrow_service.return_borrowed_item(db, cache, record_id)
    if not record:
        raise BusinessError.not_found("Active borrow record", reason=record_id)

    AuditLog.log_action("return", "borrow_record", record_id, current_user.email,
                        changes={"item_id": record.item_id, "quantity": record.quantity})
    return record
