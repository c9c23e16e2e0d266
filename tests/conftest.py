import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("AWS_S3_BUCKET", "test-bucket")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from file_uploads.core.exceptions import StorageError
from file_uploads.db.database import init_db
from file_uploads.db.db_utils import UploadRecordStore
from file_uploads.dependencies import get_lifecycle_manager
from file_uploads.main import app
from file_uploads.schemas.upload import ValidatedUploadRequest
from file_uploads.service.upload_service import UploadLifecycleManager

START = datetime(2026, 2, 25, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


class FakeBlobStore:
    def __init__(self):
        self.grants = []
        self.objects = set()
        self.fail = False

    async def issue_upload_grant(self, key, ttl_seconds, content_type):
        if self.fail:
            raise StorageError("Presigned upload URL generation failed: unavailable")
        self.grants.append((key, ttl_seconds, content_type))
        return f"https://test-bucket.s3.amazonaws.com/{key}?X-Amz-Expires={ttl_seconds}"

    async def exists(self, key):
        if self.fail:
            raise StorageError("Failed to get S3 metadata: unavailable")
        return key in self.objects


class InMemoryRecordStore:
    """Dict-backed stand-in for the record store, same contract."""

    def __init__(self):
        self.records = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise StorageError("Database unavailable")

    async def put(self, metadata):
        self._check()
        if metadata.file_id in self.records:
            raise StorageError(f"Database insert failed: duplicate {metadata.file_id}")
        self.records[metadata.file_id] = metadata

    async def get(self, file_id):
        self._check()
        return self.records.get(file_id)

    async def conditional_update_status(self, file_id, expected_status, new_status, updated_at):
        self._check()
        metadata = self.records.get(file_id)
        if metadata is None or metadata.status != expected_status:
            return False
        self.records[file_id] = metadata.model_copy(
            update={"status": new_status, "updated_at": updated_at}
        )
        return True

    async def scan_by_status_and_expiry(self, status, before):
        self._check()
        return [
            metadata
            for metadata in self.records.values()
            if metadata.status == status and metadata.expires_at <= before
        ]


def make_request(file_name="report.pdf", file_size_bytes=524288, content_type="application/pdf"):
    return ValidatedUploadRequest(
        file_name=file_name, file_size_bytes=file_size_bytes, content_type=content_type
    )


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def memory_store():
    return InMemoryRecordStore()


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def record_store(db_engine):
    session_factory = sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    return UploadRecordStore(session_factory)


@pytest.fixture
def manager(record_store, blob_store, clock):
    return UploadLifecycleManager(record_store, blob_store, ttl_seconds=300, clock=clock)


@pytest.fixture
def memory_manager(memory_store, blob_store, clock):
    return UploadLifecycleManager(memory_store, blob_store, ttl_seconds=300, clock=clock)


@pytest.fixture
def client(memory_manager):
    app.dependency_overrides[get_lifecycle_manager] = lambda: memory_manager
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return {"X-User-Id": "user-123"}
