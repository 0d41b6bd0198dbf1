"""Inventory CRUD through the remote store with local-cache fallback."""
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from borrowtrack.core.exceptions import InvalidInputError
from borrowtrack.schemas.inventory import ITEM_TYPES, TYPE_PREFIXES, InventoryCreate, InventoryUpdate, item_adapter
from borrowtrack.services.barcode import generate_item_barcode
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.reconcile import read_one, read_through, with_fallback, write_through
from borrowtrack.services.remote_store import InventoryRemote

logger = logging.getLogger(__name__)

# Fields that may be cleared to "" but never to NULL in the record shape
_TEXT_FIELDS = ("image", "description", "brand", "location", "tool_number", "serial_number",
                "notes", "measuring_tool_number", "sop", "usage_period")
_REQUIRED_FIELDS = ("name", "quantity", "available", "year", "unit", "condition")


def next_item_id(item_type: str, ids: Iterable[str]) -> str:
    """
    Next sequential id within the type prefix: t1, t2 ... t10.

    Suffixes are compared as numbers; ids that do not match the prefix are ignored.
    """
    prefix = TYPE_PREFIXES[item_type]
    pattern = re.compile(rf"^{prefix}(\d+)$")
    highest = 0
    for item_id in ids:
        match = pattern.match(item_id)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1}"


def _known_ids(db: Session, cache: LocalCache, item_type: str) -> List[str]:
    return with_fallback(
        lambda: InventoryRemote(db).ids_of_type(item_type),
        lambda: [i.id for i in cache.items.load_all() if i.type == item_type],
        f"list {item_type} ids",
    )


def _local_upsert(mirror, record):
    mirror.upsert(record)
    return record


def _clean_patch(patch: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for field, value in patch.items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        if value is None and field in _TEXT_FIELDS:
            value = ""
        cleaned[field] = value
    return cleaned


def filter_items(items: list, search: Optional[str] = None) -> list:
    """Case-insensitive match on name, brand, location and description."""
    if not search:
        return list(items)
    needle = search.strip().lower()
    return [
        i for i in items
        if any(needle in (getattr(i, f) or "").lower() for f in ("name", "brand", "location", "description"))
    ]


def get_inventory_items(db: Session, cache: LocalCache) -> list:
    return read_through(lambda: InventoryRemote(db).all(), cache.items, "get inventory items")


def get_inventory_items_by_type(db: Session, cache: LocalCache, item_type: str) -> list:
    if item_type not in ITEM_TYPES:
        raise InvalidInputError(f"Unknown item type '{item_type}'", "type")
    return read_through(
        lambda: InventoryRemote(db).all(item_type),
        cache.items,
        f"get {item_type} items",
        in_scope=lambda i: i.type == item_type,
    )


def get_inventory_item(db: Session, cache: LocalCache, item_id: str):
    return read_one(lambda: InventoryRemote(db).get(item_id), cache.items, item_id, f"get inventory item {item_id}")


def refresh_inventory_data(db: Session, cache: LocalCache) -> list:
    """Re-read the whole inventory from the remote store and overwrite the cache."""
    items = get_inventory_items(db, cache)
    logger.info("Inventory refreshed: %d item(s)", len(items))
    return items


def add_inventory_item(db: Session, cache: LocalCache, data: InventoryCreate):
    """
    Create an item with the next id of its type.

    available defaults to quantity; the barcode is derived from the id.
    """
    item_id = next_item_id(data.type, _known_ids(db, cache, data.type))
    fields = {k: v for k, v in data.model_dump().items() if v is not None}
    fields.update(
        id=item_id,
        available=data.quantity if data.available is None else data.available,
        added_date=datetime.now(timezone.utc),
        barcode=generate_item_barcode(item_id),
    )
    item = item_adapter.validate_python(fields)

    return write_through(
        lambda: InventoryRemote(db).insert(item),
        cache.items.upsert,
        lambda: _local_upsert(cache.items, item),
        f"add inventory item {item_id}",
    )


def update_inventory_item(db: Session, cache: LocalCache, item_id: str, data: InventoryUpdate):
    """Change only the fields that were sent. Returns None for an unknown item."""
    patch = _clean_patch(data.model_dump(exclude_unset=True))

    if "quantity" in patch or "available" in patch:
        current = get_inventory_item(db, cache, item_id)
        if current is None:
            return None
        quantity = patch.get("quantity", current.quantity)
        available = patch.get("available", current.available)
        if not 0 <= available <= quantity:
            raise InvalidInputError("Available must be between 0 and quantity", "available")

    def local():
        current = cache.items.find(item_id)
        if current is None:
            return None
        updated = item_adapter.validate_python({**current.model_dump(), **patch})
        return _local_upsert(cache.items, updated)

    def mirror(item):
        if item is not None:
            cache.items.upsert(item)

    return write_through(
        lambda: InventoryRemote(db).update(item_id, patch),
        mirror,
        local,
        f"update inventory item {item_id}",
        missing=lambda item: item is None,
    )


def delete_inventory_item(db: Session, cache: LocalCache, item_id: str) -> bool:
    return write_through(
        lambda: InventoryRemote(db).delete(item_id),
        lambda _deleted: cache.items.remove(item_id),
        lambda: cache.items.remove(item_id),
        f"delete inventory item {item_id}",
        missing=lambda deleted: not deleted,
    )
