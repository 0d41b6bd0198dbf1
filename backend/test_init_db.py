from datetime import datetime, timezone

from borrowtrack.db.init_db import check_tables_exist, migrate_local_cache, test_connection as ping_remote
from borrowtrack.models.borrow_record import BorrowRecord
from borrowtrack.schemas.borrow import BorrowRecordData
from borrowtrack.schemas.inventory import item_adapter
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services.remote_store import BorrowRemote, InventoryRemote, UserRemote

ADDED = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _cache_only_records(cache):
    cache.items.upsert(item_adapter.validate_python({
        "id": "m1", "type": "material", "name": "Cable Ties", "quantity": 50, "available": 50, "added_date": ADDED,
    }))
    cache.users.upsert(UserRecord(
        email="offline@example.com", password="hash", name="Offline User", created_at=ADDED,
    ))
    cache.records.upsert(BorrowRecordData(
        id="b1714521600000123", item_id="t1", user_email="offline@example.com",
        borrow_date=ADDED, quantity=2, barcode="B1714521600000123",
    ))


def test_migrate_pushes_cache_only_records(db, cache, make_item, make_user):
    make_item(name="Drill", quantity=5)
    make_user(email="admin@example.com", role="admin")
    _cache_only_records(cache)

    migrated = migrate_local_cache(db, cache)

    assert migrated == {"inventory_items": 1, "users": 1, "borrow_records": 1}
    assert InventoryRemote(db).get("m1").name == "Cable Ties"
    assert UserRemote(db).get("offline@example.com").name == "Offline User"
    record = BorrowRemote(db).get("b1714521600000123")
    assert record.status == "active"
    assert record.quantity == 2


def test_migrate_leaves_remote_available_alone(db, cache, make_item):
    make_item(name="Drill", quantity=5)
    _cache_only_records(cache)

    migrate_local_cache(db, cache)

    assert db.query(BorrowRecord).count() == 1
    assert InventoryRemote(db).get("t1").available == 5


def test_migrate_skips_existing_remote_keys(db, cache, make_item, make_user):
    make_item(name="Drill", quantity=5)
    make_user(email="admin@example.com", name="Admin")
    cache.items.upsert(cache.items.find("t1").model_copy(update={"name": "Renamed", "available": 1}))
    cache.users.upsert(cache.users.find("admin@example.com").model_copy(update={"name": "Renamed"}))

    assert migrate_local_cache(db, cache) == {"inventory_items": 0, "users": 0, "borrow_records": 0}
    assert InventoryRemote(db).get("t1").name == "Drill"
    assert InventoryRemote(db).get("t1").available == 5
    assert UserRemote(db).get("admin@example.com").name == "Admin"

    _cache_only_records(cache)
    assert migrate_local_cache(db, cache)["borrow_records"] == 1
    assert migrate_local_cache(db, cache) == {"inventory_items": 0, "users": 0, "borrow_records": 0}


def test_table_check_and_connection(db, offline_db):
    assert all(check_tables_exist(db.get_bind()).values())
    assert ping_remote(db) is True
    assert ping_remote(offline_db) is False
