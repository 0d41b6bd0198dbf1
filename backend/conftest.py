"""Shared fixtures.

Reachable database: in-memory SQLite shared through a StaticPool.
Unreachable database: a SQLite file inside a directory that does not exist,
so every statement fails with OperationalError.
"""
import os

# Must be set before borrowtrack.core.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ALLOWED_HOSTS"] = "localhost,127.0.0.1,testserver"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["MIGRATE_LOCAL_ON_STARTUP"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import borrowtrack.models  # noqa: F401 - register models
from borrowtrack.db.base import Base
from borrowtrack.schemas.inventory import InventoryCreate
from borrowtrack.schemas.user import UserCreate
from borrowtrack.services import inventory_service, user_service
from borrowtrack.services.local_mirror import LocalCache


@pytest.fixture
def remote_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(remote_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=remote_engine)()
    yield session
    session.close()


@pytest.fixture
def offline_db(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'remote.db'}")
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def cache(tmp_path):
    return LocalCache.at(tmp_path / "cache")


@pytest.fixture
def make_item(db, cache):
    def _make(name="Multimeter", type="tool", quantity=5, **fields):
        return inventory_service.add_inventory_item(
            db, cache, InventoryCreate(name=name, type=type, quantity=quantity, **fields)
        )
    return _make


@pytest.fixture
def make_user(db, cache):
    def _make(email="user@example.com", password="password123", name="Test User", role="user", **fields):
        return user_service.add_user(
            db, cache, UserCreate(email=email, password=password, name=name, role=role, **fields)
        )
    return _make
