"""Shared fixtures: an in-memory stand-in for the Supabase client and app wiring."""
import os

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-test-key")
os.environ.setdefault("ADMIN_EMAIL", "admin@example.com")

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

SUPABASE_URL = os.environ["SUPABASE_URL"]


# ---------------------------------------------------------------------------
# Fake Supabase client
# ---------------------------------------------------------------------------


class FakeStorageError(Exception):
    def __init__(self, message: str, status: int = 400):
        self.status = status
        super().__init__(message)


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.filters: list[tuple[str, object]] = []
        self.row: dict | None = None

    def select(self, *_columns):
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def insert(self, row: dict):
        self.row = dict(row)
        return self

    def execute(self):
        if self.table in self.db.failing_tables:
            raise RuntimeError(f"database unavailable: {self.table}")
        rows = self.db.tables.setdefault(self.table, [])
        if self.row is not None:
            stored = {
                "id": str(uuid.uuid4()),
                "created_at": datetime.now(timezone.utc).isoformat(),
                **self.row,
            }
            rows.append(stored)
            return SimpleNamespace(data=[stored])
        matched = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        return SimpleNamespace(data=matched)


class FakeBucketApi:
    def __init__(self, storage: "FakeStorage", bucket: str):
        self.storage = storage
        self.bucket = bucket

    def upload(self, path, file, file_options=None):
        with self.storage.lock:
            self.storage.upload_calls.append({"path": path, "size": len(file), "options": dict(file_options or {})})
            if self.storage.upload_failures > 0:
                self.storage.upload_failures -= 1
                raise FakeStorageError("Upload failed: storage timeout", status=503)
            if self.bucket not in self.storage.buckets:
                raise FakeStorageError("Bucket not found", status=404)
            upsert = (file_options or {}).get("upsert") == "true"
            objects = self.storage.objects.setdefault(self.bucket, {})
            if path in objects and not upsert:
                raise FakeStorageError("The resource already exists", status=409)
            objects[path] = file
        return SimpleNamespace(path=path)


class FakeStorage:
    def __init__(self):
        self.lock = threading.Lock()
        self.buckets: dict[str, dict] = {}
        self.objects: dict[str, dict[str, bytes]] = {}
        self.upload_calls: list[dict] = []
        self.upload_failures = 0
        self.list_error: Exception | None = None
        self.create_error: Exception | None = None
        self.update_error: Exception | None = None
        self.list_barrier: threading.Barrier | None = None
        self.create_calls = 0
        self.update_calls = 0

    def list_buckets(self):
        if self.list_error:
            raise self.list_error
        with self.lock:
            names = list(self.buckets)
        if self.list_barrier:
            self.list_barrier.wait(timeout=5)
        return [SimpleNamespace(id=name, name=name) for name in names]

    def create_bucket(self, id, name=None, options=None):
        with self.lock:
            self.create_calls += 1
            if self.create_error:
                raise self.create_error
            if id in self.buckets:
                raise FakeStorageError("The resource already exists", status=409)
            self.buckets[id] = dict(options or {})
        return {"name": id}

    def update_bucket(self, id, options):
        with self.lock:
            self.update_calls += 1
            if self.update_error:
                raise self.update_error
            if id not in self.buckets:
                raise FakeStorageError("Bucket not found", status=404)
            self.buckets[id].update(options)
        return {"message": "Successfully updated"}

    def from_(self, bucket: str) -> FakeBucketApi:
        return FakeBucketApi(self, bucket)


class FakeSupabase:
    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.failing_tables: set[str] = set()
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


@dataclass
class FakePolicyResponse:
    ok: bool = True
    status_code: int = 200
    text: str = "{}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fake_db() -> FakeSupabase:
    db = FakeSupabase()
    db.tables["subjects"] = [
        {"id": "S1", "name": "Mathematics", "has_subcategories": False},
        {"id": "S2", "name": "Physics", "has_subcategories": True},
    ]
    db.tables["sub_categories"] = [
        {"id": "SC1", "name": "Mechanics", "subject_id": "S2"},
        {"id": "SC9", "name": "Algebra", "subject_id": "S1"},
    ]
    db.tables["users"] = [
        {"id": "admin-1", "email": "root@example.com", "is_admin": True},
        {"id": "user-1", "email": "someone@example.com", "is_admin": False},
    ]
    db.tables["papers"] = []
    return db


@pytest.fixture(autouse=True)
def policy_calls(monkeypatch) -> list[dict]:
    """Record the best-effort policy POST instead of sending it."""
    import db.queries.storage as storage_module

    calls: list[dict] = []

    def fake_post(url, **kwargs):
        calls.append({"url": url, **kwargs})
        return FakePolicyResponse()

    monkeypatch.setattr(storage_module.requests, "post", fake_post)
    return calls


@pytest.fixture()
def storage_queries(fake_db):
    from db.queries.storage import StorageQueries

    return StorageQueries("papers", db=fake_db)


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def gateway(fake_db, storage_queries, sleeps):
    from db.queries.papers import PaperQueries
    from services.papers import MetadataStore
    from services.storage import ObjectStore, StorageProvisioner
    from services.upload import UploadGateway

    return UploadGateway(
        provisioner=StorageProvisioner(storage_queries),
        object_store=ObjectStore(storage_queries, sleep=sleeps.append),
        metadata=MetadataStore(PaperQueries(db=fake_db)),
        clock=lambda: 1_700_000_000.125,
    )
