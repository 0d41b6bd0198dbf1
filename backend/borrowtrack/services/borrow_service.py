"""
Borrowing: create/return records and keep item availability in step.

Creating a record takes `quantity` units out of the item's `available`;
returning puts them back. Remotely both changes share one transaction; in the
local fallback both are applied to the mirror.
"""
import logging
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import InvalidInputError
from borrowtrack.schemas.borrow import BorrowRecordCreate, BorrowRecordData
from borrowtrack.services.barcode import generate_borrowing_barcode
from borrowtrack.services.inventory_service import get_inventory_item
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.reconcile import read_one, read_through, write_through
from borrowtrack.services.remote_store import BorrowRemote

logger = logging.getLogger(__name__)


def generate_borrow_id(exists: Callable[[str], bool]) -> str:
    """b<epoch-millis><0-999>; on a collision a second random suffix is appended (checked once)."""
    record_id = f"b{int(time.time() * 1000)}{random.randint(0, 999)}"
    if exists(record_id):
        record_id = f"{record_id}{random.randint(0, 999)}"
    return record_id


def _new_record(record_id: str, data: BorrowRecordCreate) -> BorrowRecordData:
    return BorrowRecordData(
        id=record_id,
        item_id=data.item_id,
        user_email=data.user_email,
        borrow_date=data.borrow_date or datetime.now(timezone.utc),
        quantity=data.quantity,
        status="active",
        estimated_duration=data.estimated_duration,
        barcode=generate_borrowing_barcode(record_id),
    )


def _mirror_pair(cache: LocalCache, result) -> None:
    record, item = result
    if record is not None:
        cache.records.upsert(record)
    if item is not None:
        cache.items.upsert(item)


def _adjust_local_available(cache: LocalCache, item_id: str, delta: int):
    item = cache.items.find(item_id)
    if item is None:
        return None
    item = item.model_copy(update={"available": item.available + delta})
    cache.items.upsert(item)
    return item


# ------------------------------------------------------------------
# Writes
# ------------------------------------------------------------------

def add_borrow_record(db: Session, cache: LocalCache, data: BorrowRecordCreate) -> BorrowRecordData:
    """
    Insert an active record and decrement the item's available count.

    No availability check here: callers that need one use borrow_item().
    """
    def remote():
        accessor = BorrowRemote(db)
        record = _new_record(generate_borrow_id(accessor.exists), data)
        return accessor.insert_and_checkout(record)

    def local():
        record = _new_record(generate_borrow_id(lambda rid: cache.records.find(rid) is not None), data)
        cache.records.upsert(record)
        item = _adjust_local_available(cache, data.item_id, -data.quantity)
        return record, item

    def mirror(result):
        record, item = result
        _mirror_pair(cache, result)
        if item is None:
            # item only known locally
            _adjust_local_available(cache, record.item_id, -record.quantity)

    record, _item = write_through(remote, mirror, local, f"borrow item {data.item_id}")
    logger.info("Borrow record %s created: %s x%d for %s", record.id, record.item_id, record.quantity,
                record.user_email)
    return record


def borrow_item(
    db: Session,
    cache: LocalCache,
    user_email: str,
    item_id: str,
    quantity: int,
    estimated_duration: Optional[int] = None,
) -> Optional[BorrowRecordData]:
    """
    Borrow `quantity` units of an item for a user.

    Raises InvalidInputError unless 0 < quantity <= available.
    Returns None when the item does not exist.
    """
    if quantity <= 0:
        raise InvalidInputError("Quantity must be positive", "quantity")

    item = get_inventory_item(db, cache, item_id)
    if item is None:
        return None
    if quantity > item.available:
        raise InvalidInputError(f"Only {item.available} unit(s) available", "quantity")

    return add_borrow_record(
        db,
        cache,
        BorrowRecordCreate(
            item_id=item_id,
            user_email=user_email,
            quantity=quantity,
            estimated_duration=estimated_duration or settings.DEFAULT_BORROW_DURATION_DAYS,
        ),
    )


def return_borrowed_item(db: Session, cache: LocalCache, record_id: str) -> Optional[BorrowRecordData]:
    """Mark an active record returned. None for an unknown or already returned record."""
    when = datetime.now(timezone.utc)

    def local():
        record = cache.records.find(record_id)
        if record is None or record.status != "active":
            return None, None
        record = record.model_copy(update={"status": "returned", "return_date": when})
        cache.records.upsert(record)
        return record, _adjust_local_available(cache, record.item_id, record.quantity)

    record, _item = write_through(
        lambda: BorrowRemote(db).mark_returned(record_id, when),
        lambda result: _mirror_pair(cache, result),
        local,
        f"return borrow record {record_id}",
        # not in the remote at all: borrowed while it was down
        missing=lambda result: result[0] is None and not BorrowRemote(db).exists(record_id),
    )
    if record is not None:
        logger.info("Borrow record %s returned", record_id)
    return record


# ------------------------------------------------------------------
# Reads
# ------------------------------------------------------------------

def get_borrow_records(db: Session, cache: LocalCache) -> List[BorrowRecordData]:
    return read_through(lambda: BorrowRemote(db).all(), cache.records, "get borrow records")


def get_borrow_record(db: Session, cache: LocalCache, record_id: str) -> Optional[BorrowRecordData]:
    return read_one(lambda: BorrowRemote(db).get(record_id), cache.records, record_id,
                    f"get borrow record {record_id}")


def get_borrow_records_by_user(db: Session, cache: LocalCache, email: str) -> List[BorrowRecordData]:
    return read_through(
        lambda: BorrowRemote(db).by_user(email),
        cache.records,
        f"get borrow records of {email}",
        in_scope=lambda r: r.user_email == email,
    )


def get_active_borrow_records_by_user(db: Session, cache: LocalCache, email: str) -> List[BorrowRecordData]:
    return [r for r in get_borrow_records_by_user(db, cache, email) if r.status == "active"]


def check_status(status: str) -> None:
    if status not in ("active", "returned"):
        raise InvalidInputError(f"Unknown status '{status}'", "status")


def get_borrow_records_by_status(db: Session, cache: LocalCache, status: str) -> List[BorrowRecordData]:
    check_status(status)
    return read_through(
        lambda: BorrowRemote(db).by_status(status),
        cache.records,
        f"get {status} borrow records",
        in_scope=lambda r: r.status == status,
    )


def get_active_borrowings(db: Session, cache: LocalCache) -> List[BorrowRecordData]:
    return get_borrow_records_by_status(db, cache, "active")


def get_recent_returns(db: Session, cache: LocalCache, days: int = 7) -> List[BorrowRecordData]:
    """Records returned in the last `days` days, most recent first."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    records = read_through(
        lambda: BorrowRemote(db).returned_since(cutoff),
        cache.records,
        "get recent returns",
        in_scope=lambda r: r.status == "returned" and r.return_date is not None and r.return_date >= cutoff,
    )
    return sorted(records, key=lambda r: r.return_date, reverse=True)


def get_borrow_records_by_date_range(
    db: Session,
    cache: LocalCache,
    start: datetime,
    end: datetime,
    user_email: Optional[str] = None,
) -> List[BorrowRecordData]:
    """Records borrowed within [start, end], optionally for one user."""
    if user_email:
        records = get_borrow_records_by_user(db, cache, user_email)
    else:
        records = get_borrow_records(db, cache)
    return [r for r in records if start <= r.borrow_date <= end]
