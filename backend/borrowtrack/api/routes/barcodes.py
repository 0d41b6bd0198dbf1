"""Resolve a scanned barcode to the item, borrow record or user it was printed for."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_current_user, get_db
from borrowtrack.core.exceptions import BusinessError
from borrowtrack.schemas.user import UserRecord, UserResponse
from borrowtrack.services import borrow_service, inventory_service, user_service
from borrowtrack.services.barcode import parse_barcode
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


@router.get("/{code}")
def resolve_barcode(
    code: str,
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(get_current_user),
):
    """
    Barcodes only carry the digits of an id, so the lookup matches the
    barcode stored on each entity.
    """
    code = code.strip().upper()
    _digits, kind = parse_barcode(code)
    is_admin = current_user.role == "admin"

    entity = None
    if kind == "item":
        entity = next((i for i in inventory_service.get_inventory_items(db, cache) if i.barcode == code), None)
    elif kind == "borrowing":
        entity = next((r for r in borrow_service.get_borrow_records(db, cache) if r.barcode == code), None)
        if entity and not is_admin and entity.user_email != current_user.email:
            entity = None
    elif kind == "user":
        user = next((u for u in user_service.get_users(db, cache) if u.barcode == code), None)
        if user and (is_admin or user.email == current_user.email):
            entity = UserResponse.model_validate(user.model_dump())
    else:
        raise BusinessError.bad_request("Unrecognized barcode")

    if entity is None:
        raise BusinessError.not_found("Barcode", reason=code)
    return {"barcode": code, "type": kind, "entity": entity}
