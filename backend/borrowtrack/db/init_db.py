"""Remote schema setup: table check, one-shot create, DDL export, local cache migration.

init_db() runs on app startup. It never drops or alters existing tables.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateTable

from borrowtrack.core.audit import AuditLog
from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import LocalCacheError, RemoteStoreError
from borrowtrack.db.base import Base
from borrowtrack.db.session import engine as default_engine, SessionLocal
from borrowtrack.models import BorrowRecord, InventoryItem, User  # noqa: F401 - register models
from borrowtrack.services.local_mirror import LocalCache
from borrowtrack.services.remote_store import BorrowRemote, InventoryRemote, UserRemote, ping

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("users", "inventory_items", "borrow_records")


def check_tables_exist(engine: Optional[Engine] = None) -> Dict[str, bool]:
    """Which of the required tables exist in the remote store."""
    try:
        existing = set(inspect(engine or default_engine).get_table_names())
    except SQLAlchemyError as exc:
        raise RemoteStoreError(f"table check failed: {type(exc).__name__}") from exc
    return {name: name in existing for name in REQUIRED_TABLES}


def create_tables(engine: Optional[Engine] = None) -> List[str]:
    """Create missing tables. Returns the names that were missing before."""
    engine = engine or default_engine
    missing = [name for name, ok in check_tables_exist(engine).items() if not ok]
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        raise RemoteStoreError(f"create tables failed: {type(exc).__name__}") from exc
    if missing:
        logger.info("Created tables: %s", ", ".join(missing))
    return missing


def schema_sql(engine: Optional[Engine] = None) -> str:
    """CREATE TABLE statements for the remote schema, in the engine's dialect."""
    dialect = (engine or default_engine).dialect
    statements = [str(CreateTable(table).compile(dialect=dialect)).strip() + ";"
                  for table in Base.metadata.sorted_tables]
    return "\n\n".join(statements) + "\n"


def test_connection(db: Session) -> bool:
    try:
        ping(db)
    except RemoteStoreError as exc:
        logger.warning("Remote store connection test failed: %s", exc)
        return False
    return True


def migrate_local_cache(db: Session, cache: LocalCache, actor_email: str = "system") -> Dict[str, int]:
    """
    Push mirrored records that the remote store does not have.

    Existing remote rows are never overwritten. Returns the number of
    records copied per collection.
    """
    migrated = {"inventory_items": 0, "users": 0, "borrow_records": 0}
    accessors = {
        "inventory_items": (cache.items, InventoryRemote(db), lambda r: r.id),
        "users": (cache.users, UserRemote(db), lambda r: r.email),
        "borrow_records": (cache.records, BorrowRemote(db), lambda r: r.id),
    }

    for name, (mirror, remote, key) in accessors.items():
        try:
            local_records = mirror.load_all()
        except LocalCacheError as exc:
            logger.warning("Skipping migration of '%s': %s", name, exc)
            continue
        remote_keys = {key(r) for r in remote.all()}
        for record in local_records:
            if key(record) in remote_keys:
                continue
            remote.insert(record)
            migrated[name] += 1

    if any(migrated.values()):
        AuditLog.log_action("migrate", "local_cache", "all", actor_email, changes=migrated)
    logger.info("Local cache migration: %s", migrated)
    return migrated


def init_db():
    try:
        if settings.AUTO_CREATE_TABLES:
            create_tables()
        missing = [name for name, ok in check_tables_exist().items() if not ok]
    except RemoteStoreError as exc:
        logger.warning("Remote store unreachable at startup, serving from local cache: %s", exc)
        return

    if missing:
        logger.warning(
            "Remote store is missing tables: %s. Create them from GET /setup/schema.sql "
            "or POST /setup/tables.", ", ".join(missing)
        )
        return

    if settings.MIGRATE_LOCAL_ON_STARTUP:
        db = SessionLocal()
        try:
            migrate_local_cache(db, LocalCache.at(settings.LOCAL_CACHE_DIR))
        except RemoteStoreError as exc:
            logger.warning("Local cache migration skipped: %s", exc)
        finally:
            db.close()
