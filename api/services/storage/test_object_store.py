"""Tests for ObjectStore.put_with_retry."""
import pytest

from errors import ObjectWriteError
from services.storage import ObjectStore


@pytest.fixture()
def store(storage_queries, fake_db, sleeps) -> ObjectStore:
    fake_db.storage.buckets["papers"] = {}
    return ObjectStore(storage_queries, sleep=sleeps.append)


def test_first_attempt_success(store, fake_db, sleeps):
    attempt = store.put_with_retry(b"%PDF-1.7", "1_exam.pdf", "application/pdf")

    assert attempt == 1
    assert sleeps == []
    assert fake_db.storage.objects["papers"]["1_exam.pdf"] == b"%PDF-1.7"
    call = fake_db.storage.upload_calls[0]
    assert call["options"]["upsert"] == "false"
    assert call["options"]["content-type"] == "application/pdf"
    assert call["options"]["cache-control"] == "3600"


def test_retries_upsert_after_first_failure(store, fake_db, sleeps):
    fake_db.storage.upload_failures = 2

    attempt = store.put_with_retry(b"data", "2_exam.pdf", "application/pdf")

    assert attempt == 3
    assert sleeps == [1.0, 1.0]
    assert [c["options"]["upsert"] for c in fake_db.storage.upload_calls] == ["false", "true", "true"]


def test_upsert_overwrites_partial_prior_write(store, fake_db):
    fake_db.storage.objects["papers"] = {"3_exam.pdf": b"partial"}
    fake_db.storage.upload_failures = 1

    store.put_with_retry(b"complete", "3_exam.pdf", "application/pdf")

    assert fake_db.storage.objects["papers"]["3_exam.pdf"] == b"complete"


def test_exhaustion_raises_with_last_error(store, fake_db, sleeps):
    fake_db.storage.upload_failures = 5

    with pytest.raises(ObjectWriteError) as exc_info:
        store.put_with_retry(b"data", "4_exam.pdf", "application/pdf")

    error = exc_info.value
    assert error.attempts == 3
    assert "storage timeout" in str(error.last_error)
    assert error.to_body() == {
        "error": "Failed to upload file to storage",
        "details": "Upload failed: storage timeout",
    }
    assert len(fake_db.storage.upload_calls) == 3
    # No delay after the final attempt
    assert sleeps == [1.0, 1.0]
    assert "4_exam.pdf" not in fake_db.storage.objects.get("papers", {})


def test_public_url_is_deterministic(store):
    assert store.public_url("5_exam.pdf") == (
        "https://example.supabase.co/storage/v1/object/public/papers/5_exam.pdf"
    )
