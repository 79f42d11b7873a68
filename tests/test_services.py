import io

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app import crud
from app.errors import ConflictError, InternalError, NotFoundError, ValidationError
from app.schemas import ContactForm
from app.services import ContactService, validate_contact_form
from app.storage import Attachment, BlobStoreError, LocalBlobStore


def make_form(**overrides):
    values = {
        "name": "Jane",
        "email": "jane@example.com",
        "emp_id": "E-7",
        "salary": "5200.50",
        "age": "41",
        "role": "manager",
        "address": "1 Main St",
        "phone_number": "+1 555 0100",
    }
    values.update(overrides)
    return ContactForm(**values)


def attachment(name="id.png", content=b"\x89PNG"):
    return Attachment(stream=io.BytesIO(content), filename=name)


def stored_files(blob_store):
    return sorted(p.name for p in blob_store.root.iterdir() if p.is_file())


def db_failure(*args, **kwargs):
    raise OperationalError("statement", {}, Exception("database is locked"))


def not_null_failure(*args, **kwargs):
    raise IntegrityError(
        "statement", {}, Exception("NOT NULL constraint failed: contacts.salary")
    )


def disk_full(data, original_name):
    raise BlobStoreError("disk full")


class UndeletableBlobStore(LocalBlobStore):
    def delete(self, path):
        raise BlobStoreError("read-only filesystem")


def test_validate_contact_form_converts_and_strips():
    contact_in = validate_contact_form(make_form(name="  Jane  "))

    assert contact_in.name == "Jane"
    assert contact_in.salary == 5200.5
    assert contact_in.age == 41


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"phone_number": None}, "All fields are required."),
        ({"address": ""}, "All fields are required."),
        ({"email": "jane.example.com"}, "Invalid email address."),
        ({"age": "forty"}, "Invalid value for age."),
        ({"salary": "nan"}, "Invalid value for salary."),
        ({"salary": "inf"}, "Invalid value for salary."),
        ({"salary": "-inf"}, "Invalid value for salary."),
    ],
)
def test_validate_contact_form_rejects(overrides, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_contact_form(make_form(**overrides))
    assert excinfo.value.message == message
    assert excinfo.value.status_code == 400


def test_create_and_list(service):
    created = service.create(make_form(), attachment())

    assert created.id is not None
    assert service.blobs.exists(created.file_path)
    assert [c.id for c in service.list_contacts()] == [created.id]


def test_create_insert_failure_removes_staged_file(service, blob_store, monkeypatch):
    monkeypatch.setattr(crud, "create_contact", db_failure)

    with pytest.raises(InternalError):
        service.create(make_form(), attachment())

    assert stored_files(blob_store) == []


def test_create_concurrent_duplicate_is_conflict(service, blob_store, monkeypatch):
    service.create(make_form())
    real_lookup = crud.get_contact_by_email
    lookups = []

    # The first lookup misses the row, as for a request checked before the insert.
    def stale_lookup(db, email):
        lookups.append(email)
        return None if len(lookups) == 1 else real_lookup(db, email)

    monkeypatch.setattr(crud, "get_contact_by_email", stale_lookup)

    with pytest.raises(ConflictError):
        service.create(make_form(name="Twin"), attachment())

    assert stored_files(blob_store) == []
    assert len(service.list_contacts()) == 1


def test_create_blob_failure_is_internal_error(db_session, tmp_path, monkeypatch):
    blobs = LocalBlobStore(tmp_path / "uploads")
    monkeypatch.setattr(blobs, "put", disk_full)
    service = ContactService(db_session, blobs)

    with pytest.raises(InternalError):
        service.create(make_form(), attachment())

    assert service.list_contacts() == []


def test_list_failure_is_internal_error(service, monkeypatch):
    monkeypatch.setattr(crud, "get_contacts", db_failure)

    with pytest.raises(InternalError):
        service.list_contacts()


def test_update_failure_keeps_old_file_and_drops_new(service, blob_store, monkeypatch):
    contact = service.create(make_form(), attachment(name="old.png"))
    old_path = contact.file_path
    monkeypatch.setattr(crud, "update_contact", db_failure)

    with pytest.raises(InternalError):
        service.update(contact.id, make_form(role="director"), attachment(name="new.png"))

    assert stored_files(blob_store) == [old_path.rsplit("/", 1)[-1]]
    assert service.get(contact.id).role == "manager"


def test_update_missing_contact_stages_nothing(service, blob_store):
    with pytest.raises(NotFoundError):
        service.update(404, make_form(), attachment())

    assert stored_files(blob_store) == []


def test_update_survives_old_blob_cleanup_failure(db_session, tmp_path):
    blobs = UndeletableBlobStore(tmp_path / "uploads")
    service = ContactService(db_session, blobs)
    contact = service.create(make_form(), attachment(name="old.png"))
    old_path = contact.file_path

    updated = service.update(contact.id, make_form(), attachment(name="new.png"))

    assert updated.file_path != old_path
    assert blobs.exists(updated.file_path)


def test_delete_returns_snapshot_and_removes_file(service, blob_store):
    contact = service.create(make_form(), attachment())
    file_path = contact.file_path

    deleted = service.delete(contact.id)

    assert deleted.email == "jane@example.com"
    assert deleted.file_path == file_path
    assert stored_files(blob_store) == []
    with pytest.raises(NotFoundError):
        service.get(deleted.id)


def test_delete_survives_blob_cleanup_failure(db_session, tmp_path):
    blobs = UndeletableBlobStore(tmp_path / "uploads")
    service = ContactService(db_session, blobs)
    contact = service.create(make_form(), attachment())
    contact_id = contact.id

    deleted = service.delete(contact_id)

    assert deleted.id == contact_id
    assert service.list_contacts() == []


def test_delete_failure_keeps_row_and_file(service, blob_store, monkeypatch):
    contact = service.create(make_form(), attachment())
    file_path = contact.file_path
    monkeypatch.setattr(crud, "delete_contact", db_failure)

    with pytest.raises(InternalError):
        service.delete(contact.id)

    assert service.get(contact.id).file_path == file_path
    assert blob_store.exists(file_path)


def test_delete_missing_contact(service):
    with pytest.raises(NotFoundError):
        service.delete(12345)


def test_create_other_constraint_failure_is_internal_error(
    service, blob_store, monkeypatch
):
    monkeypatch.setattr(crud, "create_contact", not_null_failure)

    with pytest.raises(InternalError):
        service.create(make_form(), attachment())

    assert stored_files(blob_store) == []


def test_update_other_constraint_failure_is_internal_error(
    service, blob_store, monkeypatch
):
    contact = service.create(make_form())
    monkeypatch.setattr(crud, "update_contact", not_null_failure)

    with pytest.raises(InternalError):
        service.update(contact.id, make_form(), attachment())

    assert stored_files(blob_store) == []


def test_create_cleanup_failure_keeps_original_error(db_session, tmp_path, monkeypatch):
    service = ContactService(db_session, UndeletableBlobStore(tmp_path / "uploads"))
    monkeypatch.setattr(crud, "create_contact", db_failure)

    with pytest.raises(InternalError):
        service.create(make_form(), attachment())


def test_update_cleanup_failure_keeps_original_error(db_session, tmp_path, monkeypatch):
    service = ContactService(db_session, UndeletableBlobStore(tmp_path / "uploads"))
    contact = service.create(make_form(), attachment(name="old.png"))
    monkeypatch.setattr(crud, "update_contact", db_failure)

    with pytest.raises(InternalError):
        service.update(contact.id, make_form(role="director"), attachment(name="new.png"))

    assert service.get(contact.id).role == "manager"
