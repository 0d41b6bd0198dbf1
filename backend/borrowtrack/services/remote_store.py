"""
Remote store accessors: one class per entity, each method one request
against the hosted database, rows mapped to typed records.

Every SQLAlchemy failure is rolled back and re-raised as RemoteStoreError so
the reconciliation layer can fall back to the local cache.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from borrowtrack.core.exceptions import RemoteStoreError
from borrowtrack.models.borrow_record import BorrowRecord
from borrowtrack.models.inventory import InventoryItem
from borrowtrack.models.user import User
from borrowtrack.schemas.borrow import BorrowRecordData
from borrowtrack.schemas.inventory import CONSUMABLE_FIELDS, TOOL_FIELDS, item_adapter
from borrowtrack.schemas.user import UserRecord

logger = logging.getLogger(__name__)

_ITEM_COMMON = ("name", "quantity", "available", "image", "description", "brand", "year",
                "unit", "location", "condition")


@contextmanager
def remote_call(db: Session, what: str):
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.debug("Remote store error during %s", what, exc_info=True)
        raise RemoteStoreError(f"{what} failed: {type(exc).__name__}") from exc


# ------------------------------------------------------------------
# Row <-> record mapping
# ------------------------------------------------------------------

def item_from_row(row: InventoryItem):
    data: Dict[str, Any] = {
        "id": row.id,
        "name": row.name,
        "type": row.type,
        "quantity": row.quantity,
        "available": row.available,
        "image": row.image or "",
        "added_date": row.added_date or datetime.now(timezone.utc),
        "description": row.description or "",
        "barcode": row.barcode or "",
        "brand": row.brand or "",
        "unit": row.unit or "pcs",
        "location": row.location or "",
        "condition": row.condition or "Good",
    }
    if row.year:
        data["year"] = row.year
    if row.type == "tool":
        for field in TOOL_FIELDS:
            value = getattr(row, field)
            data[field] = value if field.endswith("calibration") else (value or "")
    else:
        data["usage_period"] = row.usage_period or ""
    return item_adapter.validate_python(data)


def item_to_columns(item) -> Dict[str, Any]:
    columns = {field: getattr(item, field) for field in ("id", "type", "added_date", "barcode") + _ITEM_COMMON}
    extra = TOOL_FIELDS if item.type == "tool" else CONSUMABLE_FIELDS
    for field in extra:
        columns[field] = getattr(item, field)
    # empty strings are stored as NULL, like the setup script expects
    return {k: (None if v == "" else v) for k, v in columns.items()}


def item_patch_columns(item_type: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the patch fields that belong to this item type."""
    allowed = set(_ITEM_COMMON) | set(TOOL_FIELDS if item_type == "tool" else CONSUMABLE_FIELDS)
    return {k: v for k, v in patch.items() if k in allowed}


def user_from_row(row: User) -> UserRecord:
    return UserRecord(
        email=row.email,
        password=row.password,
        role=row.role,
        name=row.name,
        nip=row.nip or "",
        birth_date=row.birth_date,
        address=row.address or "",
        created_at=row.created_at or datetime.now(timezone.utc),
        barcode=row.barcode or "",
    )


def record_from_row(row: BorrowRecord) -> BorrowRecordData:
    return BorrowRecordData(
        id=row.id,
        item_id=row.item_id,
        user_email=row.user_email,
        borrow_date=row.borrow_date,
        return_date=row.return_date,
        quantity=row.quantity,
        status=row.status,
        estimated_duration=row.estimated_duration or 7,
        barcode=row.barcode or "",
    )


# ------------------------------------------------------------------
# Accessors
# ------------------------------------------------------------------

class InventoryRemote:
    def __init__(self, db: Session):
        self.db = db

    def all(self, item_type: Optional[str] = None) -> list:
        with remote_call(self.db, "list inventory items"):
            q = self.db.query(InventoryItem)
            if item_type:
                q = q.filter(InventoryItem.type == item_type)
            return [item_from_row(r) for r in q.all()]

    def get(self, item_id: str):
        with remote_call(self.db, f"get inventory item {item_id}"):
            row = self.db.get(InventoryItem, item_id)
            return item_from_row(row) if row else None

    def ids_of_type(self, item_type: str) -> List[str]:
        with remote_call(self.db, f"list {item_type} ids"):
            return [r[0] for r in self.db.query(InventoryItem.id).filter(InventoryItem.type == item_type).all()]

    def insert(self, item):
        with remote_call(self.db, f"insert inventory item {item.id}"):
            row = InventoryItem(**item_to_columns(item))
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return item_from_row(row)

    def update(self, item_id: str, patch: Dict[str, Any]):
        with remote_call(self.db, f"update inventory item {item_id}"):
            row = self.db.get(InventoryItem, item_id)
            if not row:
                return None
            for field, value in item_patch_columns(row.type, patch).items():
                setattr(row, field, value)
            self.db.commit()
            self.db.refresh(row)
            return item_from_row(row)

    def delete(self, item_id: str) -> bool:
        with remote_call(self.db, f"delete inventory item {item_id}"):
            deleted = self.db.query(InventoryItem).filter(InventoryItem.id == item_id).delete()
            self.db.commit()
            return deleted > 0


class UserRemote:
    def __init__(self, db: Session):
        self.db = db

    def all(self) -> List[UserRecord]:
        with remote_call(self.db, "list users"):
            return [user_from_row(r) for r in self.db.query(User).all()]

    def get(self, email: str) -> Optional[UserRecord]:
        with remote_call(self.db, f"get user {email}"):
            row = self.db.get(User, email)
            return user_from_row(row) if row else None

    def exists(self, email: str) -> bool:
        with remote_call(self.db, f"check user {email}"):
            return self.db.query(User.email).filter(User.email == email).first() is not None

    def insert(self, user: UserRecord) -> UserRecord:
        with remote_call(self.db, f"insert user {user.email}"):
            row = User(**user.model_dump())
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return user_from_row(row)

    def update(self, email: str, patch: Dict[str, Any]) -> Optional[UserRecord]:
        with remote_call(self.db, f"update user {email}"):
            row = self.db.get(User, email)
            if not row:
                return None
            for field, value in patch.items():
                setattr(row, field, value)
            self.db.commit()
            self.db.refresh(row)
            return user_from_row(row)

    def delete(self, email: str) -> bool:
        with remote_call(self.db, f"delete user {email}"):
            deleted = self.db.query(User).filter(User.email == email).delete()
            self.db.commit()
            return deleted > 0


class BorrowRemote:
    def __init__(self, db: Session):
        self.db = db

    def all(self) -> List[BorrowRecordData]:
        with remote_call(self.db, "list borrow records"):
            return [record_from_row(r) for r in self.db.query(BorrowRecord).all()]

    def get(self, record_id: str) -> Optional[BorrowRecordData]:
        with remote_call(self.db, f"get borrow record {record_id}"):
            row = self.db.get(BorrowRecord, record_id)
            return record_from_row(row) if row else None

    def exists(self, record_id: str) -> bool:
        with remote_call(self.db, f"check borrow record {record_id}"):
            return self.db.query(BorrowRecord.id).filter(BorrowRecord.id == record_id).first() is not None

    def by_user(self, email: str) -> List[BorrowRecordData]:
        with remote_call(self.db, f"list borrow records of {email}"):
            rows = self.db.query(BorrowRecord).filter(BorrowRecord.user_email == email).all()
            return [record_from_row(r) for r in rows]

    def by_status(self, status: str) -> List[BorrowRecordData]:
        with remote_call(self.db, f"list {status} borrow records"):
            rows = self.db.query(BorrowRecord).filter(BorrowRecord.status == status).all()
            return [record_from_row(r) for r in rows]

    def returned_since(self, cutoff: datetime) -> List[BorrowRecordData]:
        with remote_call(self.db, "list recent returns"):
            rows = (
                self.db.query(BorrowRecord)
                .filter(BorrowRecord.status == "returned", BorrowRecord.return_date >= cutoff)
                .all()
            )
            return [record_from_row(r) for r in rows]

    def insert(self, record: BorrowRecordData) -> BorrowRecordData:
        """Plain insert, item availability untouched."""
        with remote_call(self.db, f"insert borrow record {record.id}"):
            row = BorrowRecord(**record.model_dump())
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return record_from_row(row)

    def insert_and_checkout(self, record: BorrowRecordData):
        """
        Insert an active record and take its units out of the item, in one transaction.

        Returns (record, item) where item is None if the item id is unknown.
        """
        with remote_call(self.db, f"insert borrow record {record.id}"):
            row = BorrowRecord(**record.model_dump())
            self.db.add(row)
            item_row = self.db.get(InventoryItem, record.item_id)
            if item_row is not None:
                item_row.available = (item_row.available or 0) - record.quantity
            self.db.commit()
            self.db.refresh(row)
            item = None
            if item_row is not None:
                self.db.refresh(item_row)
                item = item_from_row(item_row)
            return record_from_row(row), item

    def mark_returned(self, record_id: str, when: datetime):
        """
        Move an active record to returned and put its units back, in one transaction.

        Returns (record, item); (None, None) if there is no active record with that id.
        """
        with remote_call(self.db, f"return borrow record {record_id}"):
            row = (
                self.db.query(BorrowRecord)
                .filter(BorrowRecord.id == record_id, BorrowRecord.status == "active")
                .first()
            )
            if row is None:
                return None, None
            row.status = "returned"
            row.return_date = when
            item_row = self.db.get(InventoryItem, row.item_id)
            if item_row is not None:
                item_row.available = (item_row.available or 0) + row.quantity
            self.db.commit()
            self.db.refresh(row)
            item = None
            if item_row is not None:
                self.db.refresh(item_row)
                item = item_from_row(item_row)
            return record_from_row(row), item


def ping(db: Session) -> None:
    with remote_call(db, "connection test"):
        db.execute(text("SELECT 1"))
