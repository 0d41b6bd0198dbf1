from datetime import datetime, timezone

import pytest

from borrowtrack.core.exceptions import InvalidInputError, StoreUnavailableError
from borrowtrack.models.inventory import InventoryItem
from borrowtrack.schemas.inventory import InventoryCreate, InventoryUpdate, item_adapter
from borrowtrack.services import inventory_service
from borrowtrack.services.inventory_service import next_item_id


def _cached_item(item_id, type="tool", quantity=2, available=None, name="Cached"):
    return item_adapter.validate_python({
        "id": item_id,
        "type": type,
        "name": name,
        "quantity": quantity,
        "available": quantity if available is None else available,
        "added_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
    })


def test_next_item_id_is_numeric():
    assert next_item_id("tool", []) == "t1"
    assert next_item_id("tool", ["t1", "t9", "t10", "m30"]) == "t11"
    assert next_item_id("apd", ["p2", "px"]) == "p3"
    assert next_item_id("material", ["t5"]) == "m1"


def test_add_items_get_increasing_ids(db, cache, make_item):
    first = make_item(name="Drill")
    second = make_item(name="Saw")

    assert (first.id, second.id) == ("t1", "t2")
    assert first.barcode == "I00000001"
    assert sorted(i.id for i in cache.items.load_all()) == ["t1", "t2"]
    assert db.query(InventoryItem).count() == 2


def test_add_item_defaults(make_item):
    item = make_item(name="Gloves", type="apd", quantity=10)

    assert item.id == "p1"
    assert item.available == 10
    assert item.brand == ""
    assert item.unit == "pcs"
    assert item.condition == "Good"
    assert item.year == datetime.now().year
    assert item.usage_period == ""


def test_add_item_keeps_type_specific_fields(make_item):
    tool = make_item(name="Caliper", serial_number="SN-1", sop="Calibrate yearly", available=3)

    assert tool.serial_number == "SN-1"
    assert tool.sop == "Calibrate yearly"
    assert tool.available == 3


def test_create_rejects_available_above_quantity():
    with pytest.raises(ValueError):
        InventoryCreate(name="Drill", type="tool", quantity=2, available=3)


def test_add_item_offline_goes_to_cache(offline_db, cache):
    cache.items.save_all([_cached_item("t4")])

    item = inventory_service.add_inventory_item(
        offline_db, cache, InventoryCreate(name="Offline Drill", type="tool", quantity=1)
    )

    assert item.id == "t5"
    assert cache.items.find("t5").name == "Offline Drill"


def test_offline_with_unreadable_cache_is_unavailable(offline_db, cache):
    cache.items.path.parent.mkdir(parents=True, exist_ok=True)
    cache.items.path.write_text("oops", encoding="utf-8")

    with pytest.raises(StoreUnavailableError):
        inventory_service.get_inventory_items(offline_db, cache)


def test_full_fetch_overwrites_cache(db, cache, make_item):
    make_item(name="Drill")
    cache.items.upsert(_cached_item("t99", name="Stale"))

    items = inventory_service.get_inventory_items(db, cache)

    assert [i.id for i in items] == ["t1"]
    assert [i.id for i in cache.items.load_all()] == ["t1"]


def test_offline_fetch_serves_cache(offline_db, cache):
    cache.items.save_all([_cached_item("t1"), _cached_item("m1", type="material")])

    assert sorted(i.id for i in inventory_service.get_inventory_items(offline_db, cache)) == ["m1", "t1"]
    assert [i.id for i in inventory_service.get_inventory_items_by_type(offline_db, cache, "material")] == ["m1"]


def test_fetch_by_type_only_replaces_that_type(db, cache, make_item):
    make_item(name="Drill")
    cache.items.upsert(_cached_item("t50", name="Stale tool"))
    cache.items.upsert(_cached_item("m7", type="material"))

    tools = inventory_service.get_inventory_items_by_type(db, cache, "tool")

    assert [i.id for i in tools] == ["t1"]
    assert sorted(i.id for i in cache.items.load_all()) == ["m7", "t1"]


def test_fetch_by_unknown_type(db, cache):
    with pytest.raises(InvalidInputError):
        inventory_service.get_inventory_items_by_type(db, cache, "vehicle")


def test_update_only_changes_sent_fields(db, cache, make_item):
    make_item(name="Drill", quantity=4, brand="Bosch")

    updated = inventory_service.update_inventory_item(db, cache, "t1", InventoryUpdate(location="Shelf B"))

    assert updated.location == "Shelf B"
    assert updated.brand == "Bosch"
    assert updated.quantity == 4
    assert cache.items.find("t1").location == "Shelf B"


def test_update_rejects_available_above_quantity(db, cache, make_item):
    make_item(name="Drill", quantity=4)

    with pytest.raises(InvalidInputError):
        inventory_service.update_inventory_item(db, cache, "t1", InventoryUpdate(available=5))
    with pytest.raises(InvalidInputError):
        inventory_service.update_inventory_item(db, cache, "t1", InventoryUpdate(quantity=1))


def test_update_unknown_item(db, cache):
    assert inventory_service.update_inventory_item(db, cache, "t404", InventoryUpdate(name="x")) is None


def test_update_offline_patches_cache(offline_db, cache):
    cache.items.save_all([_cached_item("m1", type="material")])

    updated = inventory_service.update_inventory_item(
        offline_db, cache, "m1", InventoryUpdate(usage_period="6 months", serial_number="ignored")
    )

    assert updated.usage_period == "6 months"
    assert not hasattr(updated, "serial_number")


def test_delete(db, cache, make_item):
    make_item()

    assert inventory_service.delete_inventory_item(db, cache, "t1") is True
    assert inventory_service.delete_inventory_item(db, cache, "t1") is False
    assert cache.items.load_all() == []
    assert inventory_service.get_inventory_item(db, cache, "t1") is None


def test_filter_items(make_item, db, cache):
    make_item(name="Cordless Drill", brand="Makita")
    make_item(name="Hammer", location="Drill cabinet")
    make_item(name="Tape", type="material")

    items = inventory_service.get_inventory_items(db, cache)

    assert sorted(i.name for i in inventory_service.filter_items(items, "drill")) == ["Cordless Drill", "Hammer"]
    assert [i.name for i in inventory_service.filter_items(items, "MAKITA")] == ["Cordless Drill"]
    assert len(inventory_service.filter_items(items, None)) == 3


def test_item_added_offline_is_usable_after_recovery(db, offline_db, cache):
    added = inventory_service.add_inventory_item(offline_db, cache, InventoryCreate(name="Ladder", type="tool", quantity=2))

    assert inventory_service.get_inventory_item(db, cache, added.id).name == "Ladder"
    assert inventory_service.update_inventory_item(db, cache, added.id, InventoryUpdate(location="Bay 4")).location == "Bay 4"
    assert cache.items.find(added.id).location == "Bay 4"

    assert inventory_service.delete_inventory_item(db, cache, added.id) is True
    assert inventory_service.get_inventory_item(db, cache, added.id) is None
