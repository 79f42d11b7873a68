"""Database models for the Contacts API.

This module defines SQLAlchemy ORM models used by the application.
"""

from sqlalchemy import Column, Float, Integer, String, UniqueConstraint

from .database import Base


class Contact(Base):
    """
    SQLAlchemy model representing a contact entry.

    Email addresses are unique across all contacts; ``file_path`` points
    at the blob holding the contact's uploaded file, if any.
    """

    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("email", name="uq_contacts_email"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    emp_id = Column(String, nullable=False)
    salary = Column(Float, nullable=False)
    age = Column(Integer, nullable=False)
    role = Column(String, nullable=False)
    address = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)

    #: Blob store reference of the uploaded file
    file_path = Column(String, nullable=True)
