"""Database setup tooling (admin only): status, DDL, one-shot create, cache migration and clearing."""
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from borrowtrack.api.deps import get_cache, get_db, require_admin
from borrowtrack.core.audit import AuditLog
from borrowtrack.core.exceptions import BusinessError, LocalCacheError, RemoteStoreError
from borrowtrack.db import init_db
from borrowtrack.schemas.user import UserRecord
from borrowtrack.services.local_mirror import LocalCache

router = APIRouter()


@router.get("/status")
def setup_status(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Connection test, table check and local cache record counts."""
    connected = init_db.test_connection(db)
    tables = None
    if connected:
        try:
            tables = init_db.check_tables_exist(db.get_bind())
        except RemoteStoreError:
            connected = False
    return {
        "connected": connected,
        "tables": tables,
        "tables_ready": bool(tables) and all(tables.values()),
        "local_cache": cache.counts(),
    }


@router.get("/schema.sql", response_class=PlainTextResponse)
def schema_sql(db: Session = Depends(get_db), current_user: UserRecord = Depends(require_admin)):
    """CREATE TABLE statements to run once against the hosted database."""
    return init_db.schema_sql(db.get_bind())


@router.post("/tables")
def create_tables(db: Session = Depends(get_db), current_user: UserRecord = Depends(require_admin)):
    try:
        created = init_db.create_tables(db.get_bind())
    except RemoteStoreError as e:
        raise BusinessError.service_unavailable(e)
    AuditLog.log_action("create_tables", "schema", "all", current_user.email, changes={"created": created})
    return {"created": created, "tables": init_db.check_tables_exist(db.get_bind())}


@router.post("/migrate")
def migrate(
    db: Session = Depends(get_db),
    cache: LocalCache = Depends(get_cache),
    current_user: UserRecord = Depends(require_admin),
):
    """Copy records that only exist in the local cache to the database."""
    try:
        migrated = init_db.migrate_local_cache(db, cache, actor_email=current_user.email)
    except RemoteStoreError as e:
        raise BusinessError.service_unavailable(e)
    return {"migrated": migrated}


@router.delete("/local-cache")
def clear_local_cache(cache: LocalCache = Depends(get_cache), current_user: UserRecord = Depends(require_admin)):
    """Remove every locally cached record. The database is not touched."""
    counts = cache.counts()
    try:
        cache.clear_all()
    except LocalCacheError as e:
        raise BusinessError.service_unavailable(e)
    AuditLog.log_action("clear", "local_cache", "all", current_user.email, changes=counts)
    return {"message": "Local cache cleared", "cleared": counts}
