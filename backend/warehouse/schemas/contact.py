# backend/warehouse/schemas/contact.py
from datetime import datetime
from typing import Annotated
from pydantic import AfterValidator, EmailStr, Field
from warehouse.models.contact import ContactType
from warehouse.schemas.common import CamelModel, Pagination


def _normalize_type(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.upper()
    if v not in ContactType.all():
        raise ValueError("Invalid contact type. Must be CUSTOMER, SUPPLIER, WORKER, or OTHER")
    return v


ContactTypeStr = Annotated[str, AfterValidator(_normalize_type)]


class ContactCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_type: ContactTypeStr
    email: EmailStr | None = None
    phone: str | None = None
    whatsapp_phone: str | None = None
    address: str | None = None
    company: str | None = None
    notes: str | None = None


class ContactUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    contact_type: ContactTypeStr | None = None
    email: EmailStr | None = None
    phone: str | None = None
    whatsapp_phone: str | None = None
    address: str | None = None
    company: str | None = None
    notes: str | None = None


class ContactResponse(CamelModel):
    id: int
    name: str
    contact_type: str
    email: str | None = None
    phone: str | None = None
    whatsapp_phone: str | None = None
    address: str | None = None
    company: str | None = None
    notes: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class NoteAuthor(CamelModel):
    id: int
    name: str
    email: str


class ContactNoteCreate(CamelModel):
    content: str = Field(..., min_length=1)
    order_id: int | None = None


class ContactNoteResponse(CamelModel):
    id: int
    contact_id: int
    content: str
    order_id: int | None = None
    created_at: datetime
    created_by_user: NoteAuthor | None = None


class ContactDetail(ContactResponse):
    contact_notes: list[ContactNoteResponse] = []


class TypeStat(CamelModel):
    total: int
    active: int


class ContactListResponse(CamelModel):
    contacts: list[ContactResponse]
    pagination: Pagination
    type_stats: dict[str, TypeStat]


class ContactWriteResponse(CamelModel):
    success: bool = True
    message: str
    contact: ContactResponse


class ContactCollectionResponse(CamelModel):
    success: bool = True
    contacts: list[ContactResponse]
    count: int


class ContactNoteWriteResponse(CamelModel):
    success: bool = True
    message: str
    note: ContactNoteResponse


class ContactNoteListResponse(CamelModel):
    success: bool = True
    notes: list[ContactNoteResponse]
