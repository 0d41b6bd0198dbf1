"""
Local cache mirror: the last known full set of records per entity collection,
persisted as one JSON file per collection.

Used only as a fallback when the remote store fails. Whole-collection
replace, single writer per process (guarded by a lock), atomic file writes.
"""
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Generic, Iterable, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from borrowtrack.core.exceptions import LocalCacheError
from borrowtrack.schemas.borrow import BorrowRecordData, record_list_adapter
from borrowtrack.schemas.inventory import item_list_adapter
from borrowtrack.schemas.user import UserRecord, user_list_adapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalMirror(Generic[T]):
    def __init__(self, path: Path, adapter: TypeAdapter, key: Callable[[T], str]):
        self.path = Path(path)
        self.adapter = adapter
        self.key = key
        self.lock = threading.RLock()

    @property
    def name(self) -> str:
        return self.path.stem

    def load_all(self) -> List[T]:
        """All mirrored records. Empty list when nothing was ever mirrored."""
        with self.lock:
            if not self.path.exists():
                return []
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                return self.adapter.validate_python(raw)
            except (OSError, ValueError, ValidationError) as exc:
                raise LocalCacheError(f"Cannot read local cache '{self.name}': {exc}") from exc

    def save_all(self, records: Iterable[T]) -> None:
        records = list(records)
        with self.lock:
            payload = self.adapter.dump_python(records, mode="json")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.name}.", suffix=".tmp")
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except OSError as exc:
                raise LocalCacheError(f"Cannot write local cache '{self.name}': {exc}") from exc
        logger.debug("Saved %d record(s) to local cache '%s'", len(records), self.name)

    def clear(self) -> None:
        with self.lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as exc:
                raise LocalCacheError(f"Cannot clear local cache '{self.name}': {exc}") from exc

    # Read-modify-write helpers built on load_all/save_all

    def find(self, key: str) -> Optional[T]:
        return next((r for r in self.load_all() if self.key(r) == key), None)

    def upsert(self, record: T) -> None:
        with self.lock:
            records = self.load_all()
            for i, existing in enumerate(records):
                if self.key(existing) == self.key(record):
                    records[i] = record
                    break
            else:
                records.append(record)
            self.save_all(records)

    def remove(self, key: str) -> bool:
        with self.lock:
            records = self.load_all()
            kept = [r for r in records if self.key(r) != key]
            if len(kept) == len(records):
                return False
            self.save_all(kept)
            return True

    def replace_where(self, in_scope: Callable[[T], bool], fresh: Iterable[T]) -> None:
        """Drop every record in scope and put the fresh ones in its place."""
        with self.lock:
            try:
                kept = [r for r in self.load_all() if not in_scope(r)]
            except LocalCacheError:
                # An unreadable cache is rebuilt from whatever the remote returned
                logger.warning("Local cache '%s' unreadable; rebuilding from remote data", self.name)
                kept = []
            self.save_all(kept + list(fresh))


@dataclass
class LocalCache:
    """The three mirrored collections."""
    items: LocalMirror
    users: LocalMirror[UserRecord]
    records: LocalMirror[BorrowRecordData]

    @classmethod
    def at(cls, directory) -> "LocalCache":
        directory = Path(directory)
        return cls(
            items=LocalMirror(directory / "inventory_items.json", item_list_adapter, key=lambda r: r.id),
            users=LocalMirror(directory / "users.json", user_list_adapter, key=lambda r: r.email),
            records=LocalMirror(directory / "borrow_records.json", record_list_adapter, key=lambda r: r.id),
        )

    def mirrors(self) -> Dict[str, LocalMirror]:
        return {"inventory_items": self.items, "users": self.users, "borrow_records": self.records}

    def counts(self) -> Dict[str, Optional[int]]:
        """Records per collection; None for a collection whose file is unreadable."""
        counts = {}
        for name, mirror in self.mirrors().items():
            try:
                counts[name] = len(mirror.load_all())
            except LocalCacheError:
                counts[name] = None
        return counts

    def clear_all(self) -> None:
        for mirror in self.mirrors().values():
            mirror.clear()
