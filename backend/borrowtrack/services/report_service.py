"""
Borrowing and inventory reports: rows, summary stats and CSV text.

Borrowing reports cover a period that starts at the beginning of the current
week (Sunday), month or year and ends now.
"""
import csv
import io
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from borrowtrack.core.exceptions import InvalidInputError
from borrowtrack.schemas.borrow import BorrowRecordData
from borrowtrack.services.borrow_service import get_borrow_records_by_date_range
from borrowtrack.services.inventory_service import get_inventory_items, get_inventory_items_by_type
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.user_service import get_users

PERIODS = ("weekly", "monthly", "yearly")

BORROWING_COLUMNS = ["Item", "Type", "User", "Quantity", "Borrow Date", "Return Date", "Status"]
ADMIN_BORROWING_COLUMNS = ["Item", "User Name", "Email", "NIP", "Role", "Quantity", "Est. Duration (days)",
                           "Borrow Date", "Return Date", "Status"]
INVENTORY_COLUMNS = ["Name", "Type", "Brand", "Quantity", "Available", "Location", "Description"]


def date_range(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "weekly":
        # weekday() is 0 on Monday; step back to the last Sunday
        start = midnight - timedelta(days=(now.weekday() + 1) % 7)
    elif period == "monthly":
        start = midnight.replace(day=1)
    elif period == "yearly":
        start = midnight.replace(month=1, day=1)
    else:
        raise InvalidInputError(f"Unknown report period '{period}'", "period")
    return start, now


def format_date(value: Optional[datetime]) -> str:
    """Short display date, e.g. "Mar 5, 2024"; N/A when missing."""
    if value is None:
        return "N/A"
    return f"{value:%b} {value.day}, {value.year}"


def borrowing_stats(records: List[BorrowRecordData]) -> Dict[str, int]:
    active = [r for r in records if r.status == "active"]
    returned = [r for r in records if r.status == "returned"]
    return {
        "totalItems": sum(r.quantity for r in records),
        "activeItems": sum(r.quantity for r in active),
        "returnedItems": sum(r.quantity for r in returned),
        "totalRecords": len(records),
        "activeRecords": len(active),
        "returnedRecords": len(returned),
    }


def borrowing_report(
    db: Session,
    cache: LocalCache,
    period: str = "monthly",
    user_email: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Records of the period joined with item and user details, newest first."""
    start, end = date_range(period, now)
    records = get_borrow_records_by_date_range(db, cache, start, end, user_email)
    items = {i.id: i for i in get_inventory_items(db, cache)}
    users = {u.email: u for u in get_users(db, cache)}

    rows = []
    for r in sorted(records, key=lambda r: r.borrow_date, reverse=True):
        item = items.get(r.item_id)
        user = users.get(r.user_email)
        rows.append({
            "id": r.id,
            "item_id": r.item_id,
            "item_name": item.name if item else "Unknown Item",
            "item_type": item.type if item else "unknown",
            "user_email": r.user_email,
            "user_name": user.name if user else "Unknown",
            "nip": user.nip if user and user.nip else "N/A",
            "role": user.role if user else "unknown",
            "quantity": r.quantity,
            "estimated_duration": r.estimated_duration,
            "borrow_date": r.borrow_date,
            "return_date": r.return_date,
            "status": r.status,
        })

    return {
        "period": period,
        "start": start,
        "end": end,
        "user_email": user_email,
        "stats": borrowing_stats(records),
        "rows": rows,
    }


def inventory_report(db: Session, cache: LocalCache, item_type: str = "all") -> dict:
    if item_type == "all":
        items = get_inventory_items(db, cache)
    else:
        items = get_inventory_items_by_type(db, cache, item_type)
    items = sorted(items, key=lambda i: (i.type, i.name.lower()))
    return {
        "type": item_type,
        "items": items,
        "stats": {
            "totalItems": len(items),
            "totalQuantity": sum(i.quantity for i in items),
            "totalAvailable": sum(i.available for i in items),
        },
    }


def _status_label(status: str) -> str:
    return "Active" if status == "active" else "Returned"


def borrowing_table(rows: List[dict], admin: bool = False) -> List[List[str]]:
    """Header plus one row per record, as text cells."""
    if admin:
        table = [list(ADMIN_BORROWING_COLUMNS)]
        for r in rows:
            table.append([
                r["item_name"],
                r["user_name"],
                r["user_email"],
                r["nip"],
                r["role"],
                str(r["quantity"]),
                str(r["estimated_duration"]),
                format_date(r["borrow_date"]),
                format_date(r["return_date"]) if r["return_date"] else "Not returned",
                r["status"],
            ])
        return table

    table = [list(BORROWING_COLUMNS)]
    for r in rows:
        table.append([
            r["item_name"],
            r["item_type"],
            r["user_email"],
            str(r["quantity"]),
            format_date(r["borrow_date"]),
            format_date(r["return_date"]),
            _status_label(r["status"]),
        ])
    return table


def _short(text: str, limit: int = 50) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def inventory_table(items: list) -> List[List[str]]:
    table = [list(INVENTORY_COLUMNS)]
    for i in items:
        table.append([
            i.name,
            i.type,
            i.brand,
            str(i.quantity),
            str(i.available),
            i.location,
            _short(i.description or ""),
        ])
    return table


def to_csv(table: List[List[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(table)
    return output.getvalue()
