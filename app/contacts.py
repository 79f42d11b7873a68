"""Contact management routes for the Contacts API."""

from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi_limiter.depends import RateLimiter

from . import schemas
from .core import get_settings
from .services import ContactService, get_contact_service
from .storage import Attachment

router = APIRouter(prefix="/contacts", tags=["contacts"])
settings = get_settings()

rate_limit = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)

error_responses = {
    code: {"model": schemas.ErrorOut}
    for code in (
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
}
rate_limited_responses = {
    **error_responses,
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": schemas.ErrorOut},
}


def contact_form(
    name: str | None = Form(None),
    email: str | None = Form(None),
    emp_id: str | None = Form(None),
    salary: str | None = Form(None),
    age: str | None = Form(None),
    role: str | None = Form(None),
    address: str | None = Form(None),
    phone_number: str | None = Form(None),
) -> schemas.ContactForm:
    """Collect the multipart contact fields without enforcing them."""
    return schemas.ContactForm(
        name=name,
        email=email,
        emp_id=emp_id,
        salary=salary,
        age=age,
        role=role,
        address=address,
        phone_number=phone_number,
    )


def as_attachment(file: UploadFile | None) -> Attachment | None:
    """Wrap an uploaded file; empty file inputs count as no file."""
    if file is None or not file.filename:
        return None
    return Attachment(stream=file.file, filename=file.filename)


@router.post(
    "/",
    response_model=schemas.ContactMessage,
    status_code=status.HTTP_201_CREATED,
    responses=rate_limited_responses,
    dependencies=[Depends(rate_limit)],
)
def create_contact(
    form: schemas.ContactForm = Depends(contact_form),
    file: UploadFile | None = File(None),
    service: ContactService = Depends(get_contact_service),
):
    """
    Create a new contact with an optional file attachment.

    Args:
        form (ContactForm): Contact fields from the multipart body.
        file (UploadFile | None): Optional file to store with the contact.
        service (ContactService): Request-scoped contact service.

    Returns:
        ContactMessage: Confirmation message and created contact.
    """
    contact = service.create(form, as_attachment(file))
    return schemas.ContactMessage(
        message="Contact added successfully.",
        contact=schemas.ContactOut.model_validate(contact),
    )


@router.get(
    "/",
    response_model=List[schemas.ContactOut],
    responses=rate_limited_responses,
    dependencies=[Depends(rate_limit)],
)
def list_contacts(service: ContactService = Depends(get_contact_service)):
    """
    Retrieve all contacts ordered by id.

    Returns:
        list[ContactOut]: List of contacts.
    """
    return service.list_contacts()


@router.get("/{contact_id}", response_model=schemas.ContactOut, responses=error_responses)
def get_contact(
    contact_id: int, service: ContactService = Depends(get_contact_service)
):
    """Retrieve a single contact by ID."""
    return service.get(contact_id)


@router.put(
    "/{contact_id}", response_model=schemas.ContactMessage, responses=error_responses
)
def update_contact(
    contact_id: int,
    form: schemas.ContactForm = Depends(contact_form),
    file: UploadFile | None = File(None),
    service: ContactService = Depends(get_contact_service),
):
    """
    Replace all fields of an existing contact.

    A new file replaces the stored one; without a file the current
    attachment is kept.

    Args:
        contact_id (int): Contact identifier.
        form (ContactForm): Full set of contact fields.
        file (UploadFile | None): Optional replacement file.
        service (ContactService): Request-scoped contact service.

    Returns:
        ContactMessage: Confirmation message and updated contact.
    """
    contact = service.update(contact_id, form, as_attachment(file))
    return schemas.ContactMessage(
        message="Contact updated successfully.",
        contact=schemas.ContactOut.model_validate(contact),
    )


@router.delete(
    "/{contact_id}", response_model=schemas.ContactMessage, responses=error_responses
)
def remove_contact(
    contact_id: int, service: ContactService = Depends(get_contact_service)
):
    """
    Delete a contact and its stored file.

    Args:
        contact_id (int): Contact identifier.
        service (ContactService): Request-scoped contact service.

    Returns:
        ContactMessage: Confirmation message and the deleted contact.
    """
    return schemas.ContactMessage(
        message="Contact deleted successfully.", contact=service.delete(contact_id)
    )
