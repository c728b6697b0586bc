"""Tests for MetadataStore."""
import pytest

from db.queries.papers import PaperQueries
from errors import MetadataPersistError, NotFoundError
from services.papers import MetadataStore

FILE_URL = "https://example.supabase.co/storage/v1/object/public/papers/1_exam.pdf"


@pytest.fixture()
def store(fake_db) -> MetadataStore:
    return MetadataStore(PaperQueries(db=fake_db))


def test_require_subject(store):
    subject = store.require_subject("S2")

    assert subject.name == "Physics"
    assert subject.has_subcategories is True


def test_require_subject_missing(store):
    with pytest.raises(NotFoundError):
        store.require_subject("missing")


def test_require_sub_category_checks_parent(store):
    assert store.require_sub_category("SC1", "S2").name == "Mechanics"
    with pytest.raises(NotFoundError):
        store.require_sub_category("SC1", "S1")


def test_create_stores_snake_case_row(store, fake_db):
    paper = store.create(year=2021, file_url=FILE_URL, subject_id="S1", user_id="admin-1", topic="")

    row = fake_db.tables["papers"][0]
    assert row["file_url"] == FILE_URL
    assert row["topic"] is None
    assert row["sub_category_id"] is None
    assert paper.model_dump(by_alias=True, mode="json")["fileUrl"] == FILE_URL


def test_create_is_idempotent_on_file_url(store, fake_db):
    first = store.create(year=2021, file_url=FILE_URL, subject_id="S1", user_id="admin-1")
    second = store.create(year=2021, file_url=FILE_URL, subject_id="S1", user_id="admin-1")

    assert first.id == second.id
    assert len(fake_db.tables["papers"]) == 1


def test_create_failure_keeps_file_url(store, fake_db):
    fake_db.failing_tables.add("papers")

    with pytest.raises(MetadataPersistError) as exc_info:
        store.create(year=2021, file_url=FILE_URL, subject_id="S1", user_id="admin-1")

    assert exc_info.value.file_url == FILE_URL
    assert "database unavailable" in exc_info.value.details


def test_unreadable_inserted_row_keeps_file_url(fake_db):
    class MangledInsert(PaperQueries):
        def create(self, fields):
            return {"id": "p-1", "year": "not-a-year", "file_url": fields["file_url"]}

    store = MetadataStore(MangledInsert(db=fake_db))

    with pytest.raises(MetadataPersistError) as exc_info:
        store.create(year=2021, file_url=FILE_URL, subject_id="S1", user_id="admin-1")

    assert exc_info.value.file_url == FILE_URL
    assert exc_info.value.to_body()["fileUrl"] == FILE_URL
