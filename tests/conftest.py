"""
Pytest configuration and shared fixtures for drivecore tests.
"""
import itertools
import os
import sys
from datetime import datetime, timedelta
from typing import Generator
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from drivecore.models import Base, FileRecord
from drivecore.storage.gateway import BlobStoreGateway
from drivecore.storage.lifecycle import FileLifecycleManager
from drivecore.storage.quota import StorageAccountant


# Test Database Configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"


class FakeClock:
    """Naive-UTC clock that moves one second forward on every read."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db_session = TestingSessionLocal()
    try:
        yield db_session
    finally:
        db_session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def gateway():
    """Mocked blob store gateway handing out unique keys."""
    mock = MagicMock(spec=BlobStoreGateway)
    counter = itertools.count(1)
    mock.generate_key.side_effect = lambda filename: f"generated-{next(counter)}-{filename}"
    return mock


@pytest.fixture
def accountant(db: Session) -> StorageAccountant:
    return StorageAccountant(db)


@pytest.fixture
def quota(db: Session, accountant: StorageAccountant):
    """Quota of 10 000 bytes for the default owner."""
    row = accountant.set_quota(OWNER_ID, 10_000)
    db.commit()
    return row


@pytest.fixture
def lifecycle(db: Session, gateway, clock: FakeClock, quota) -> FileLifecycleManager:
    return FileLifecycleManager(
        db,
        gateway,
        clock=clock,
        retention_days=30,
        max_versions=10,
        verify_uploads=False,
    )


@pytest.fixture
def upload(lifecycle: FileLifecycleManager):
    """Confirm an upload for the default owner, with a fresh blob key per call."""
    counter = itertools.count(1)

    def _upload(name: str, size: int, folder_id=None, owner_id=OWNER_ID, **kwargs) -> FileRecord:
        blob_key = f"upload-{next(counter)}-{name}"
        media_type = kwargs.pop("media_type", "application/pdf")
        return lifecycle.create(owner_id, folder_id, blob_key, name, size, media_type, **kwargs)

    return _upload
