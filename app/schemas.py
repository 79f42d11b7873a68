from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


CONTACT_FIELDS = (
    "name",
    "email",
    "emp_id",
    "salary",
    "age",
    "role",
    "address",
    "phone_number",
)
"""Business fields every create and update request must supply."""


class ContactForm(BaseModel):
    """Raw form values as submitted; any of them may be missing."""

    name: Optional[str] = None
    email: Optional[str] = None
    emp_id: Optional[str] = None
    salary: Optional[str] = None
    age: Optional[str] = None
    role: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None

    def missing_fields(self) -> List[str]:
        """Return the names of fields that are absent or blank."""
        return [
            field
            for field in CONTACT_FIELDS
            if not (getattr(self, field) or "").strip()
        ]


class ContactBase(BaseModel):
    """Shared fields for contact schemas."""

    name: str
    email: str
    emp_id: str
    salary: float = Field(allow_inf_nan=False)
    age: int
    role: str
    address: str
    phone_number: str


class ContactIn(ContactBase):
    """Validated contact data ready to be written."""

    pass


class ContactOut(ContactBase):
    """Schema for returning contact with ID and file reference."""

    id: int
    file_path: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ContactMessage(BaseModel):
    """Response envelope for mutating contact operations."""

    message: str
    contact: ContactOut


class ErrorOut(BaseModel):
    """Error body returned for failed contact operations."""

    detail: str
