"""CRUD operations for contacts.

This module contains database interaction logic for the contact
entity, isolated from the service layer and FastAPI route handlers.
Errors raised by SQLAlchemy propagate to the caller.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models, schemas


def create_contact(
    db: Session, contact_in: schemas.ContactIn, file_path: str | None = None
) -> models.Contact:
    """
    Create and persist a new contact.

    Args:
        db (Session): Database session.
        contact_in (ContactIn): Validated contact data.
        file_path (str | None): Blob reference of the uploaded file.

    Returns:
        Contact: Newly created contact.
    """
    contact = models.Contact(**contact_in.model_dump(), file_path=file_path)
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def get_contact(db: Session, contact_id: int) -> models.Contact | None:
    """
    Retrieve a single contact by primary key.

    Args:
        db (Session): Database session.
        contact_id (int): Contact identifier.

    Returns:
        Contact | None: Contact if found, otherwise ``None``.
    """
    return db.execute(
        select(models.Contact).where(models.Contact.id == contact_id)
    ).scalar_one_or_none()


def get_contact_by_email(db: Session, email: str) -> models.Contact | None:
    """
    Retrieve a contact by email address.

    Args:
        db (Session): Database session.
        email (str): Contact email.

    Returns:
        Contact | None: Contact if found, otherwise ``None``.
    """
    return db.execute(
        select(models.Contact).where(models.Contact.email == email)
    ).scalar_one_or_none()


def get_contacts(db: Session) -> list[models.Contact]:
    """Return every contact ordered by ascending id."""
    return list(db.scalars(select(models.Contact).order_by(models.Contact.id)).all())


def update_contact(db: Session, contact: models.Contact, changes: dict):
    """
    Overwrite fields of a contact.

    Args:
        db (Session): Database session.
        contact (Contact): Contact instance.
        changes (dict): Fields to write.

    Returns:
        Contact: Updated contact.
    """
    for key, value in changes.items():
        setattr(contact, key, value)

    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


def delete_contact(db: Session, contact: models.Contact):
    """
    Delete a contact from the database.

    Args:
        db (Session): Database session.
        contact (Contact): Contact to delete.
    """
    db.delete(contact)
    db.commit()
    return None
