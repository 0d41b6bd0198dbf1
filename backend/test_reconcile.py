import logging
from datetime import datetime, timezone

import pytest

from borrowtrack.core.exceptions import (
    InvalidInputError,
    LocalCacheError,
    RemoteStoreError,
    StoreUnavailableError,
)
from borrowtrack.schemas.borrow import BorrowRecordData
from borrowtrack.services.reconcile import read_one, read_through, with_fallback, write_through


def _record(record_id, status="active"):
    return BorrowRecordData(
        id=record_id,
        item_id="t1",
        user_email="user@example.com",
        borrow_date=datetime(2024, 5, 1, tzinfo=timezone.utc),
        quantity=1,
        status=status,
    )


def _fail(*_args):
    raise RemoteStoreError("connection refused")


def test_with_fallback_prefers_remote():
    calls = []
    result = with_fallback(lambda: "remote", lambda: calls.append("local") or "local", "test")
    assert result == "remote"
    assert calls == []


def test_with_fallback_uses_local_on_remote_failure(caplog):
    with caplog.at_level(logging.WARNING, logger="borrowtrack.services.reconcile"):
        result = with_fallback(_fail, lambda: "local", "get things")

    assert result == "local"
    assert "get things" in caplog.text


def test_with_fallback_total_failure():
    def broken_cache():
        raise LocalCacheError("corrupt")

    with pytest.raises(StoreUnavailableError):
        with_fallback(_fail, broken_cache, "get things")


def test_with_fallback_does_not_swallow_invalid_input():
    def reject():
        raise InvalidInputError("bad", "field")

    with pytest.raises(InvalidInputError):
        with_fallback(reject, lambda: "local", "add thing")


def test_full_read_overwrites_cache_and_drops_stale(cache):
    cache.records.save_all([_record("stale")])

    result = read_through(lambda: [_record("b1"), _record("b2")], cache.records, "get records")

    assert [r.id for r in result] == ["b1", "b2"]
    assert sorted(r.id for r in cache.records.load_all()) == ["b1", "b2"]


def test_scoped_read_keeps_records_outside_scope(cache):
    cache.records.save_all([_record("b1", "returned"), _record("b2", "active")])

    read_through(
        lambda: [_record("b3", "active")],
        cache.records,
        "get active records",
        in_scope=lambda r: r.status == "active",
    )

    assert sorted(r.id for r in cache.records.load_all()) == ["b1", "b3"]


def test_failed_read_serves_cache_filtered_by_scope(cache):
    cache.records.save_all([_record("b1", "returned"), _record("b2", "active")])

    result = read_through(_fail, cache.records, "get active records", in_scope=lambda r: r.status == "active")

    assert [r.id for r in result] == ["b2"]


def test_failed_read_with_empty_cache_is_empty(cache):
    assert read_through(_fail, cache.records, "get records") == []


def test_read_one(cache):
    cache.records.save_all([_record("b1")])

    assert read_one(lambda: _record("b1", "returned"), cache.records, "b1", "get b1").status == "returned"
    assert cache.records.find("b1").status == "returned"

    assert read_one(_fail, cache.records, "b1", "get b1").id == "b1"
    assert read_one(_fail, cache.records, "nope", "get nope") is None


def test_read_one_serves_local_only_record(cache):
    cache.records.save_all([_record("b1")])

    assert read_one(lambda: None, cache.records, "b1", "get b1").id == "b1"
    assert [r.id for r in cache.records.load_all()] == ["b1"]
    assert read_one(lambda: None, cache.records, "b2", "get b2") is None


def test_read_one_unreadable_cache_after_remote_miss(cache):
    cache.records.path.parent.mkdir(parents=True, exist_ok=True)
    cache.records.path.write_text("not json", encoding="utf-8")

    assert read_one(lambda: None, cache.records, "b1", "get b1") is None


def test_write_through_mirrors_remote_result(cache):
    result = write_through(lambda: _record("b1"), cache.records.upsert, _fail, "add record")

    assert result.id == "b1"
    assert [r.id for r in cache.records.load_all()] == ["b1"]


def test_write_through_ignores_cache_failure_after_remote_success(caplog):
    def broken_mirror(_result):
        raise LocalCacheError("disk full")

    with caplog.at_level(logging.WARNING, logger="borrowtrack.services.reconcile"):
        result = write_through(lambda: "saved", broken_mirror, lambda: "local", "add record")

    assert result == "saved"
    assert "disk full" in caplog.text


def test_write_through_falls_back_to_local_write(cache):
    def local():
        cache.records.upsert(_record("b9"))
        return "local"

    assert write_through(_fail, cache.records.upsert, local, "add record") == "local"
    assert [r.id for r in cache.records.load_all()] == ["b9"]
