import re
from datetime import datetime, timedelta, timezone

import pytest

from borrowtrack.core.exceptions import InvalidInputError
from borrowtrack.models.borrow_record import BorrowRecord
from borrowtrack.schemas.borrow import BorrowRecordCreate
from borrowtrack.schemas.inventory import item_adapter
from borrowtrack.services import borrow_service, inventory_service
from borrowtrack.services.borrow_service import generate_borrow_id


def _available(db, cache, item_id):
    return inventory_service.get_inventory_item(db, cache, item_id).available


def test_generate_borrow_id_format():
    record_id = generate_borrow_id(lambda _id: False)
    assert re.fullmatch(r"b\d{13}\d{1,3}", record_id)


def test_generate_borrow_id_checks_once():
    checked = []

    def always_taken(record_id):
        checked.append(record_id)
        return True

    record_id = generate_borrow_id(always_taken)

    assert len(checked) == 1
    assert record_id.startswith(checked[0])
    assert len(record_id) > len(checked[0])


def test_barcode_follows_final_id_after_collision(db, cache, make_item, monkeypatch):
    make_item()
    seen = []

    def taken_once(record_id):
        seen.append(record_id)
        return len(seen) == 1

    monkeypatch.setattr(borrow_service.BorrowRemote, "exists", lambda self, record_id: taken_once(record_id))
    record = borrow_service.borrow_item(db, cache, "user@example.com", "t1", 1)

    assert record.id != seen[0]
    assert record.id.startswith(seen[0])
    assert record.barcode == "B" + record.id[1:]


def test_borrow_then_return_restores_available(db, cache, make_item):
    make_item(quantity=5)

    record = borrow_service.borrow_item(db, cache, "user@example.com", "t1", 3)

    assert record.status == "active"
    assert record.return_date is None
    assert record.estimated_duration == 7
    assert record.barcode == "B" + record.id[1:]
    assert _available(db, cache, "t1") == 2
    assert cache.items.find("t1").available == 2
    assert cache.records.find(record.id).status == "active"

    returned = borrow_service.return_borrowed_item(db, cache, record.id)

    assert returned.status == "returned"
    assert returned.return_date is not None
    assert _available(db, cache, "t1") == 5
    assert cache.items.find("t1").available == 5
    assert cache.records.find(record.id).status == "returned"


def test_available_stays_in_bounds(db, cache, make_item):
    make_item(quantity=2)

    first = borrow_service.borrow_item(db, cache, "a@example.com", "t1", 1)
    second = borrow_service.borrow_item(db, cache, "b@example.com", "t1", 1)
    assert _available(db, cache, "t1") == 0

    with pytest.raises(InvalidInputError):
        borrow_service.borrow_item(db, cache, "c@example.com", "t1", 1)

    borrow_service.return_borrowed_item(db, cache, first.id)
    borrow_service.return_borrowed_item(db, cache, second.id)
    assert _available(db, cache, "t1") == 2


def test_borrow_rejects_bad_quantity_without_writing(db, cache, make_item):
    make_item(quantity=2)

    with pytest.raises(InvalidInputError):
        borrow_service.borrow_item(db, cache, "user@example.com", "t1", 0)
    with pytest.raises(InvalidInputError):
        borrow_service.borrow_item(db, cache, "user@example.com", "t1", 3)

    assert db.query(BorrowRecord).count() == 0
    assert _available(db, cache, "t1") == 2


def test_borrow_unknown_item(db, cache):
    assert borrow_service.borrow_item(db, cache, "user@example.com", "t404", 1) is None


def test_add_borrow_record_does_not_check_availability(db, cache, make_item):
    make_item(quantity=1)

    borrow_service.add_borrow_record(
        db, cache, BorrowRecordCreate(item_id="t1", user_email="user@example.com", quantity=3)
    )

    assert _available(db, cache, "t1") == -2


def test_return_twice_or_unknown(db, cache, make_item):
    make_item()
    record = borrow_service.borrow_item(db, cache, "user@example.com", "t1", 1)

    assert borrow_service.return_borrowed_item(db, cache, record.id) is not None
    assert borrow_service.return_borrowed_item(db, cache, record.id) is None
    assert borrow_service.return_borrowed_item(db, cache, "b0") is None


def test_offline_borrow_updates_cache(offline_db, cache):
    cache.items.save_all([item_adapter.validate_python({
        "id": "t1",
        "type": "tool",
        "name": "Torque Wrench",
        "quantity": 2,
        "available": 2,
        "added_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
    })])

    record = borrow_service.borrow_item(offline_db, cache, "user@example.com", "t1", 1)

    assert record.status == "active"
    assert record.id.startswith("b")
    assert cache.items.find("t1").available == 1
    assert [r.id for r in cache.records.load_all()] == [record.id]

    returned = borrow_service.return_borrowed_item(offline_db, cache, record.id)

    assert returned.status == "returned"
    assert cache.items.find("t1").available == 2


def test_queries(db, cache, make_item):
    make_item()
    make_item(name="Level")
    a1 = borrow_service.borrow_item(db, cache, "a@example.com", "t1", 1)
    a2 = borrow_service.borrow_item(db, cache, "a@example.com", "t2", 1)
    b1 = borrow_service.borrow_item(db, cache, "b@example.com", "t1", 1)
    borrow_service.return_borrowed_item(db, cache, a1.id)

    assert len(borrow_service.get_borrow_records(db, cache)) == 3
    assert borrow_service.get_borrow_record(db, cache, b1.id).user_email == "b@example.com"
    assert sorted(r.id for r in borrow_service.get_borrow_records_by_user(db, cache, "a@example.com")) == sorted(
        [a1.id, a2.id]
    )
    assert [r.id for r in borrow_service.get_active_borrow_records_by_user(db, cache, "a@example.com")] == [a2.id]
    assert sorted(r.id for r in borrow_service.get_active_borrowings(db, cache)) == sorted([a2.id, b1.id])
    assert [r.id for r in borrow_service.get_recent_returns(db, cache)] == [a1.id]

    with pytest.raises(InvalidInputError):
        borrow_service.get_borrow_records_by_status(db, cache, "lost")


def test_queries_offline_use_cache(db, offline_db, cache, make_item):
    make_item()
    record = borrow_service.borrow_item(db, cache, "a@example.com", "t1", 1)

    assert [r.id for r in borrow_service.get_borrow_records_by_user(offline_db, cache, "a@example.com")] == [record.id]
    assert [r.id for r in borrow_service.get_active_borrowings(offline_db, cache)] == [record.id]
    assert borrow_service.get_recent_returns(offline_db, cache) == []


def test_records_by_date_range(db, cache, make_item):
    make_item(quantity=10)
    old = borrow_service.add_borrow_record(db, cache, BorrowRecordCreate(
        item_id="t1", user_email="a@example.com", quantity=1,
        borrow_date=datetime(2023, 3, 1, tzinfo=timezone.utc),
    ))
    new = borrow_service.borrow_item(db, cache, "b@example.com", "t1", 1)

    now = datetime.now(timezone.utc)
    recent = borrow_service.get_borrow_records_by_date_range(db, cache, now - timedelta(days=1), now + timedelta(days=1))
    assert [r.id for r in recent] == [new.id]

    in_2023 = borrow_service.get_borrow_records_by_date_range(
        db, cache,
        datetime(2023, 1, 1, tzinfo=timezone.utc),
        datetime(2023, 12, 31, tzinfo=timezone.utc),
        user_email="a@example.com",
    )
    assert [r.id for r in in_2023] == [old.id]


def test_offline_borrow_survives_remote_recovery(db, offline_db, cache, make_item):
    make_item(quantity=3)
    record = borrow_service.borrow_item(offline_db, cache, "user@example.com", "t1", 2)

    fetched = borrow_service.get_borrow_record(db, cache, record.id)
    assert fetched.id == record.id
    assert cache.records.find(record.id) is not None

    returned = borrow_service.return_borrowed_item(db, cache, record.id)
    assert returned is not None
    assert returned.status == "returned"
    assert cache.records.find(record.id).status == "returned"
    assert cache.items.find("t1").available == 3
    assert db.query(BorrowRecord).count() == 0

    assert borrow_service.return_borrowed_item(db, cache, record.id) is None


def test_return_of_remotely_returned_record_ignores_stale_cache(db, cache, make_item):
    make_item(quantity=3)
    record = borrow_service.borrow_item(db, cache, "user@example.com", "t1", 1)
    stale = cache.records.find(record.id)
    borrow_service.return_borrowed_item(db, cache, record.id)
    cache.records.upsert(stale)

    assert borrow_service.return_borrowed_item(db, cache, record.id) is None
    assert _available(db, cache, "t1") == 3
