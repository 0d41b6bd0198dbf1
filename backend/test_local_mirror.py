import json
from datetime import datetime, timezone

import pytest

from borrowtrack.core.exceptions import LocalCacheError
from borrowtrack.schemas.borrow import BorrowRecordData


def _record(record_id, user="user@example.com", status="active", quantity=1):
    return BorrowRecordData(
        id=record_id,
        item_id="t1",
        user_email=user,
        borrow_date=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
        quantity=quantity,
        status=status,
    )


def test_load_all_is_empty_when_nothing_was_mirrored(cache):
    assert cache.records.load_all() == []


def test_saved_records_are_iso_json(cache):
    cache.records.save_all([_record("b1")])

    raw = json.loads(cache.records.path.read_text(encoding="utf-8"))
    assert raw[0]["id"] == "b1"
    assert raw[0]["borrow_date"].startswith("2024-05-01T09:00:00")

    loaded = cache.records.load_all()
    assert loaded[0].borrow_date == datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def test_unreadable_file_raises(cache):
    cache.records.path.parent.mkdir(parents=True, exist_ok=True)
    cache.records.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(LocalCacheError):
        cache.records.load_all()


def test_upsert_replaces_by_key(cache):
    cache.records.upsert(_record("b1", quantity=1))
    cache.records.upsert(_record("b2"))
    cache.records.upsert(_record("b1", quantity=4))

    records = {r.id: r for r in cache.records.load_all()}
    assert set(records) == {"b1", "b2"}
    assert records["b1"].quantity == 4


def test_remove(cache):
    cache.records.save_all([_record("b1"), _record("b2")])

    assert cache.records.remove("b1") is True
    assert cache.records.remove("b1") is False
    assert [r.id for r in cache.records.load_all()] == ["b2"]


def test_replace_where_only_touches_scope(cache):
    cache.records.save_all([
        _record("b1", user="a@example.com"),
        _record("b2", user="b@example.com"),
        _record("b3", user="a@example.com"),
    ])

    cache.records.replace_where(lambda r: r.user_email == "a@example.com", [_record("b4", user="a@example.com")])

    assert sorted(r.id for r in cache.records.load_all()) == ["b2", "b4"]


def test_replace_where_rebuilds_unreadable_cache(cache):
    cache.records.path.parent.mkdir(parents=True, exist_ok=True)
    cache.records.path.write_text("garbage", encoding="utf-8")

    cache.records.replace_where(lambda r: True, [_record("b1")])

    assert [r.id for r in cache.records.load_all()] == ["b1"]


def test_counts_and_clear_all(cache):
    cache.records.save_all([_record("b1"), _record("b2")])
    cache.users.path.parent.mkdir(parents=True, exist_ok=True)
    cache.users.path.write_text("[{]", encoding="utf-8")

    assert cache.counts() == {"inventory_items": 0, "users": None, "borrow_records": 2}

    cache.clear_all()
    assert cache.counts() == {"inventory_items": 0, "users": 0, "borrow_records": 0}
