"""Inventory: list/search for everyone, create/edit/delete for admins."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_current_user, get_db, require_admin
from borrowtrack.core.audit import AuditLog
from borrowtrack.core.exceptions import BusinessError, InvalidInputError
from borrowtrack.schemas.inventory import InventoryCreate, InventoryItemRecord, InventoryUpdate
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services import inventory_service
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


@router.get("", response_model=List[InventoryItemRecord])
def list_inventory(
    type: Optional[str] = Query(None, description="tool | material | apd"),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Inventory list with optional type filter and search."""
    try:
        if type and type != "all":
            items = inventory_service.get_inventory_items_by_type(db, cache, type)
        else:
            items = inventory_service.get_inventory_items(db, cache)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    return sorted(inventory_service.filter_items(items, search), key=lambda i: i.name.lower())


@router.post("/refresh", response_model=List[InventoryItemRecord])
def refresh_inventory(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """Re-read the inventory from the database and refresh the local cache."""
    return inventory_service.refresh_inventory_data(db, cache)


@router.get("/{item_id}", response_model=InventoryItemRecord)
def get_item(
    item_id: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    item = inventory_service.get_inventory_item(db, cache, item_id)
    if not item:
        raise BusinessError.not_found("Inventory item", reason=item_id)
    return item


@router.post("", response_model=InventoryItemRecord, status_code=201)
def create_item(
    data: InventoryCreate,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Create a new inventory item. The id and barcode are assigned here."""
    try:
        item = inventory_service.add_inventory_item(db, cache, data)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)

    AuditLog.log_action("create", "inventory_item", item.id, current_user.email,
                        changes={"name": item.name, "type": item.type, "quantity": item.quantity})
    return item


@router.patch("/{item_id}", response_model=InventoryItemRecord)
def update_item(
    item_id: str,
    data: InventoryUpdate,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Update an existing inventory item (only the fields sent)."""
    try:
        item = inventory_service.update_inventory_item(db, cache, item_id, data)
    except InvalidInputError as e:
        raise BusinessError.from_invalid_input(e)
    if not item:
        raise BusinessError.not_found("Inventory item", reason=item_id)

    AuditLog.log_action("update", "inventory_item", item_id, current_user.email,
                        changes=data.model_dump(exclude_unset=True))
    return item


@router.delete("/{item_id}")
def delete_item(
    item_id: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Delete an inventory item. Its borrow records are kept."""
    if not inventory_service.delete_inventory_item(db, cache, item_id):
        raise BusinessError.not_found("Inventory item", reason=item_id)

    AuditLog.log_action("delete", "inventory_item", item_id, current_user.email)
    return {"message": "Item deleted successfully", "id": item_id}
