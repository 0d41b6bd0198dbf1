"""
Reconciliation between the remote store and the local cache mirror.

Reads:  remote first; on success the mirror is overwritten for the query's
        scope (last-writer-wins, no merge); on failure the mirror is served as-is.
        A single-record read the remote answers with "not found" is served
        from the mirror when it is there (a record written while offline).
Writes: remote first; on success the same change is applied to the mirror;
        on failure the change is applied to the mirror only.

There is no reconciliation pass: a write that lands only in the mirror stays
there, and the two can diverge until the next successful full read.
"""
import logging
from typing import Callable, List, Optional, TypeVar

from borrowtrack.core.exceptions import LocalCacheError, RemoteStoreError, StoreUnavailableError
from borrowtrack.services.local_mirror import LocalMirror

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def with_fallback(remote_op: Callable[[], R], local_op: Callable[[], R], action: str) -> R:
    try:
        return remote_op()
    except RemoteStoreError as exc:
        logger.warning("%s: %s; using local cache", action, exc)
        try:
            return local_op()
        except LocalCacheError as cache_exc:
            logger.error("%s: local cache unavailable too: %s", action, cache_exc)
            raise StoreUnavailableError(f"{action}: remote store and local cache both unavailable") from cache_exc


def mirror_quietly(action: str, apply: Callable[[], object]) -> None:
    """Apply a mirror update after a successful remote write. The remote result stands either way."""
    try:
        apply()
    except LocalCacheError as exc:
        logger.warning("%s: remote write succeeded but local cache update failed: %s", action, exc)


def read_through(
    remote_read: Callable[[], List[T]],
    mirror: LocalMirror,
    action: str,
    in_scope: Optional[Callable[[T], bool]] = None,
) -> List[T]:
    """
    Read a set of records. `in_scope` describes which mirrored records the
    query covers (all of them when omitted).
    """
    scope = in_scope or (lambda _record: True)

    def remote() -> List[T]:
        records = remote_read()
        mirror_quietly(action, lambda: mirror.replace_where(scope, records))
        return records

    def local() -> List[T]:
        return [r for r in mirror.load_all() if scope(r)]

    return with_fallback(remote, local, action)


def from_mirror(action: str, lookup: Callable[[], R], default: Optional[R] = None) -> Optional[R]:
    """Mirror lookup after the remote answered "not found". An unreadable mirror counts as not found too."""
    try:
        return lookup()
    except LocalCacheError as exc:
        logger.warning("%s: local cache unreadable: %s", action, exc)
        return default


def read_one(
    remote_get: Callable[[], Optional[T]],
    mirror: LocalMirror,
    key: str,
    action: str,
) -> Optional[T]:
    """
    Read a single record. A record the remote does not have may still exist
    only in the mirror (written while the remote was down); it is served from
    there and left in place. Not found means absent from both.
    """
    def remote() -> Optional[T]:
        record = remote_get()
        if record is None:
            return from_mirror(action, lambda: mirror.find(key))
        mirror_quietly(action, lambda: mirror.upsert(record))
        return record

    return with_fallback(remote, lambda: mirror.find(key), action)


def write_through(
    remote_write: Callable[[], R],
    mirror_apply: Callable[[R], object],
    local_write: Callable[[], R],
    action: str,
    missing: Optional[Callable[[R], bool]] = None,
) -> R:
    """
    `missing` tells a remote "no such record" result apart; the record may
    exist only in the mirror, so the local write is tried before reporting it.
    """
    def remote() -> R:
        result = remote_write()
        if missing is not None and missing(result):
            result = from_mirror(action, local_write, default=result)
        mirror_quietly(action, lambda: mirror_apply(result))
        return result

    return with_fallback(remote, local_write, action)
