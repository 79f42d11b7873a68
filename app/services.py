"""Contact service: validation, file staging and persistence.

``ContactService`` is built per request from a database session and a
blob store. Every operation either completes or raises one of the errors
from :mod:`app.errors`. Files are only written to the blob store once
validation and the email check have passed; if a later step fails the
staged blob is removed again.
"""

import logging

import pydantic
from fastapi import Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from . import crud, models, schemas
from .database import get_db
from .errors import ConflictError, InternalError, NotFoundError, ValidationError
from .storage import Attachment, BlobStore, BlobStoreError, get_blob_store

logger = logging.getLogger(__name__)

MISSING_FIELDS = "All fields are required."
INVALID_EMAIL = "Invalid email address."
EMAIL_TAKEN = "Contact with this email already exists."
CONTACT_NOT_FOUND = "Contact not found"
INTERNAL = "Internal server error"


def validate_contact_form(form: schemas.ContactForm) -> schemas.ContactIn:
    """
    Check a submitted form and convert it to typed contact data.

    Args:
        form (ContactForm): Raw form values.

    Raises:
        ValidationError: If a field is missing or blank, the email has no
            ``@``, or a numeric field cannot be parsed.

    Returns:
        ContactIn: Validated contact data with surrounding whitespace removed.
    """
    missing = form.missing_fields()
    if missing:
        logger.warning("Rejected contact form, missing fields: %s", ", ".join(missing))
        raise ValidationError(MISSING_FIELDS)

    values = {field: getattr(form, field).strip() for field in schemas.CONTACT_FIELDS}
    if "@" not in values["email"]:
        logger.warning("Rejected contact form, invalid email %r", values["email"])
        raise ValidationError(INVALID_EMAIL)

    try:
        return schemas.ContactIn(**values)
    except pydantic.ValidationError as exc:
        field = exc.errors()[0]["loc"][0]
        raise ValidationError(f"Invalid value for {field}.") from exc


class ContactService:
    """Create, list, update and delete contacts together with their files."""

    def __init__(self, db: Session, blobs: BlobStore):
        self.db = db
        self.blobs = blobs

    def _stage(self, attachment: Attachment | None) -> str | None:
        if attachment is None:
            return None
        try:
            return self.blobs.put(attachment.stream, attachment.filename)
        except BlobStoreError as exc:
            logger.exception("Could not stage %r", attachment.filename)
            raise InternalError(INTERNAL) from exc

    def _discard(self, path: str | None) -> None:
        """Best-effort blob removal; failures are logged, never raised."""
        if not path:
            return
        try:
            self.blobs.delete(path)
        except BlobStoreError:
            logger.warning("Could not remove blob %s", path, exc_info=True)

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except SQLAlchemyError:
            logger.warning("Session rollback failed", exc_info=True)

    def _email_taken(self, email: str, contact_id: int | None = None) -> bool:
        """Whether a contact other than ``contact_id`` already uses ``email``."""
        try:
            holder = crud.get_contact_by_email(self.db, email)
        except SQLAlchemyError:
            logger.warning("Could not check email %r", email, exc_info=True)
            return False
        return holder is not None and holder.id != contact_id

    def get(self, contact_id: int) -> models.Contact:
        """
        Return the contact with ``contact_id``.

        Raises:
            NotFoundError: If no such contact exists.
            InternalError: If the database query fails.
        """
        try:
            contact = crud.get_contact(self.db, contact_id)
        except SQLAlchemyError as exc:
            logger.exception("Could not load contact %s", contact_id)
            raise InternalError(INTERNAL) from exc
        if contact is None:
            raise NotFoundError(CONTACT_NOT_FOUND)
        return contact

    def list_contacts(self) -> list[models.Contact]:
        """Return all contacts ordered by id."""
        try:
            return crud.get_contacts(self.db)
        except SQLAlchemyError as exc:
            logger.exception("Could not list contacts")
            raise InternalError(INTERNAL) from exc

    def create(
        self, form: schemas.ContactForm, attachment: Attachment | None = None
    ) -> models.Contact:
        """
        Validate ``form``, store the attachment and insert a new contact.

        Args:
            form (ContactForm): Submitted contact fields.
            attachment (Attachment | None): Optional uploaded file.

        Raises:
            ValidationError: If the form is incomplete or malformed.
            ConflictError: If the email is already used by another contact.
            InternalError: If the database or blob store fails.

        Returns:
            Contact: Newly created contact.
        """
        contact_in = validate_contact_form(form)

        try:
            existing = crud.get_contact_by_email(self.db, contact_in.email)
        except SQLAlchemyError as exc:
            logger.exception("Could not check email %r", contact_in.email)
            raise InternalError(INTERNAL) from exc
        if existing is not None:
            logger.warning("Rejected contact, email %r already exists", contact_in.email)
            raise ConflictError(EMAIL_TAKEN)

        file_path = self._stage(attachment)
        try:
            contact = crud.create_contact(self.db, contact_in, file_path)
        except IntegrityError as exc:
            self._rollback()
            self._discard(file_path)
            if self._email_taken(contact_in.email):
                logger.warning("Email %r was taken concurrently", contact_in.email)
                raise ConflictError(EMAIL_TAKEN) from exc
            logger.exception("Could not insert contact %r", contact_in.email)
            raise InternalError(INTERNAL) from exc
        except SQLAlchemyError as exc:
            self._rollback()
            self._discard(file_path)
            logger.exception("Could not insert contact %r", contact_in.email)
            raise InternalError(INTERNAL) from exc

        logger.info("Created contact %s", contact.id)
        return contact

    def update(
        self,
        contact_id: int,
        form: schemas.ContactForm,
        attachment: Attachment | None = None,
    ) -> models.Contact:
        """
        Replace every field of a contact and optionally its file.

        The previous file is removed only after the new row is committed.

        Args:
            contact_id (int): Contact identifier.
            form (ContactForm): Full set of contact fields.
            attachment (Attachment | None): Optional replacement file.

        Raises:
            ValidationError: If the form is incomplete or malformed.
            NotFoundError: If the contact does not exist.
            ConflictError: If the new email belongs to another contact.
            InternalError: If the database or blob store fails.

        Returns:
            Contact: Updated contact.
        """
        contact_in = validate_contact_form(form)
        contact = self.get(contact_id)
        old_path = contact.file_path

        new_path = self._stage(attachment)
        changes = contact_in.model_dump()
        changes["file_path"] = new_path or old_path

        try:
            contact = crud.update_contact(self.db, contact, changes)
        except IntegrityError as exc:
            self._rollback()
            self._discard(new_path)
            if self._email_taken(contact_in.email, contact_id):
                logger.warning("Email %r belongs to another contact", contact_in.email)
                raise ConflictError(EMAIL_TAKEN) from exc
            logger.exception("Could not update contact %s", contact_id)
            raise InternalError(INTERNAL) from exc
        except StaleDataError as exc:
            self._rollback()
            self._discard(new_path)
            raise NotFoundError(CONTACT_NOT_FOUND) from exc
        except SQLAlchemyError as exc:
            self._rollback()
            self._discard(new_path)
            logger.exception("Could not update contact %s", contact_id)
            raise InternalError(INTERNAL) from exc

        if new_path and old_path and old_path != new_path:
            self._discard(old_path)

        logger.info("Updated contact %s", contact_id)
        return contact

    def delete(self, contact_id: int) -> schemas.ContactOut:
        """
        Delete a contact, then its file.

        Args:
            contact_id (int): Contact identifier.

        Raises:
            NotFoundError: If the contact does not exist.
            InternalError: If the database fails.

        Returns:
            ContactOut: Field values of the deleted contact.
        """
        contact = self.get(contact_id)
        deleted = schemas.ContactOut.model_validate(contact)

        try:
            crud.delete_contact(self.db, contact)
        except SQLAlchemyError as exc:
            self._rollback()
            logger.exception("Could not delete contact %s", contact_id)
            raise InternalError(INTERNAL) from exc

        self._discard(deleted.file_path)
        logger.info("Deleted contact %s", contact_id)
        return deleted


def get_contact_service(
    db: Session = Depends(get_db), blobs: BlobStore = Depends(get_blob_store)
) -> ContactService:
    """FastAPI dependency building a service for the current request."""
    return ContactService(db, blobs)
