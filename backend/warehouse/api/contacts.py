# backend/warehouse/api/contacts.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from warehouse.api.deps import get_current_user
from warehouse.core.database import get_db
from warehouse.core.exceptions import ConflictError, NotFoundError, ValidationError
from warehouse.models import Contact, ContactNote, ContactType
from warehouse.models.user import User
from warehouse.schemas.common import MessageResponse, Pagination
from warehouse.schemas.contact import (
    ContactCollectionResponse,
    ContactCreate,
    ContactDetail,
    ContactListResponse,
    ContactNoteCreate,
    ContactNoteListResponse,
    ContactNoteResponse,
    ContactNoteWriteResponse,
    ContactResponse,
    ContactUpdate,
    ContactWriteResponse,
    TypeStat,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


async def _get_contact(db: AsyncSession, contact_id: int, active_only: bool = True) -> Contact:
    contact = await db.get(Contact, contact_id, populate_existing=True)
    if contact is None or (active_only and not contact.is_active):
        raise NotFoundError("Contact not found")
    return contact


async def _check_duplicate(db: AsyncSession, name: str, contact_type: str, exclude_id: Optional[int] = None):
    query = select(Contact.id).where(
        func.lower(Contact.name) == name.lower(),
        Contact.contact_type == contact_type,
        Contact.is_active == True,  # noqa: E712
    )
    if exclude_id is not None:
        query = query.where(Contact.id != exclude_id)
    if await db.scalar(query) is not None:
        raise ConflictError(f"A {contact_type.lower()} named '{name}' already exists")


def _search_clause(term: str):
    pattern = f"%{term}%"
    return or_(
        Contact.name.ilike(pattern),
        Contact.email.ilike(pattern),
        Contact.phone.ilike(pattern),
        Contact.company.ilike(pattern),
    )


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    search: Optional[str] = None,
    contact_type: Optional[str] = Query(None, alias="type"),
    is_active: str = Query("true", alias="isActive", pattern="^(true|false|all)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Contact)
    if contact_type and contact_type.lower() != "all":
        query = query.where(Contact.contact_type == contact_type.upper())
    if is_active != "all":
        query = query.where(Contact.is_active == (is_active == "true"))
    if search:
        query = query.where(_search_clause(search))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    contacts = (
        await db.execute(query.order_by(Contact.name, Contact.id).offset((page - 1) * limit).limit(limit))
    ).scalars().all()

    rows = await db.execute(
        select(Contact.contact_type, Contact.is_active, func.count(Contact.id)).group_by(
            Contact.contact_type, Contact.is_active
        )
    )
    type_stats = {t: TypeStat(total=0, active=0) for t in ContactType.all()}
    for ctype, active, count in rows:
        stat = type_stats.setdefault(ctype, TypeStat(total=0, active=0))
        stat.total += count
        if active:
            stat.active += count

    return ContactListResponse(
        contacts=[ContactResponse.model_validate(c) for c in contacts],
        pagination=Pagination.build(page, limit, total or 0),
        type_stats=type_stats,
    )


@router.get("/type/{contact_type}", response_model=ContactCollectionResponse)
async def contacts_by_type(
    contact_type: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contact_type = contact_type.upper()
    if contact_type not in ContactType.all():
        raise ValidationError(f"Contact type must be one of: {', '.join(ContactType.all())}")
    contacts = (
        await db.execute(
            select(Contact)
            .where(Contact.contact_type == contact_type, Contact.is_active == True)  # noqa: E712
            .order_by(Contact.name)
        )
    ).scalars().all()
    return ContactCollectionResponse(
        contacts=[ContactResponse.model_validate(c) for c in contacts], count=len(contacts)
    )


@router.get("/search/{term}", response_model=ContactCollectionResponse)
async def search_contacts(
    term: str,
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if len(term.strip()) < 2:
        raise ValidationError("Search term must be at least 2 characters")
    contacts = (
        await db.execute(
            select(Contact)
            .where(_search_clause(term.strip()), Contact.is_active == True)  # noqa: E712
            .order_by(Contact.name)
            .limit(limit)
        )
    ).scalars().all()
    return ContactCollectionResponse(
        contacts=[ContactResponse.model_validate(c) for c in contacts], count=len(contacts)
    )


@router.post("", response_model=ContactWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    req: ContactCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _check_duplicate(db, req.name, req.contact_type)
    contact = Contact(**req.model_dump())
    db.add(contact)
    await db.commit()
    await db.refresh(contact)
    logger.info(f"Created {contact.contact_type} contact {contact.id} ({contact.name})")
    return ContactWriteResponse(message="Contact created successfully", contact=ContactResponse.model_validate(contact))


@router.get("/{contact_id}", response_model=ContactDetail)
async def get_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Contact)
        .options(selectinload(Contact.contact_notes).selectinload(ContactNote.created_by_user))
        .where(Contact.id == contact_id)
    )
    contact = result.scalar_one_or_none()
    if contact is None:
        raise NotFoundError("Contact not found")
    return ContactDetail.model_validate(contact)


@router.put("/{contact_id}", response_model=ContactWriteResponse)
async def update_contact(
    contact_id: int,
    req: ContactUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contact = await _get_contact(db, contact_id)
    changes = req.model_dump(exclude_unset=True)
    if "name" in changes or "contact_type" in changes:
        await _check_duplicate(
            db,
            changes.get("name") or contact.name,
            changes.get("contact_type") or contact.contact_type,
            exclude_id=contact.id,
        )
    for key, value in changes.items():
        if value is None and not Contact.__table__.c[key].nullable:
            continue
        setattr(contact, key, value)
    await db.commit()
    await db.refresh(contact)
    return ContactWriteResponse(message="Contact updated successfully", contact=ContactResponse.model_validate(contact))


@router.delete("/{contact_id}", response_model=MessageResponse)
async def delete_contact(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contact = await _get_contact(db, contact_id)
    contact.is_active = False
    await db.commit()
    logger.info(f"Deactivated contact {contact_id}")
    return MessageResponse(message="Contact deleted successfully")


@router.put("/{contact_id}/toggle-status", response_model=ContactWriteResponse)
async def toggle_contact_status(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    contact = await _get_contact(db, contact_id, active_only=False)
    if not contact.is_active:
        await _check_duplicate(db, contact.name, contact.contact_type, exclude_id=contact.id)
    contact.is_active = not contact.is_active
    await db.commit()
    await db.refresh(contact)
    state = "activated" if contact.is_active else "deactivated"
    return ContactWriteResponse(message=f"Contact {state} successfully", contact=ContactResponse.model_validate(contact))


@router.post("/{contact_id}/notes", response_model=ContactNoteWriteResponse, status_code=status.HTTP_201_CREATED)
async def add_contact_note(
    contact_id: int,
    req: ContactNoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _get_contact(db, contact_id, active_only=False)
    note = ContactNote(contact_id=contact_id, created_by=current_user.id, **req.model_dump())
    db.add(note)
    await db.commit()
    result = await db.execute(
        select(ContactNote).options(selectinload(ContactNote.created_by_user)).where(ContactNote.id == note.id)
    )
    return ContactNoteWriteResponse(
        message="Note added successfully", note=ContactNoteResponse.model_validate(result.scalar_one())
    )


@router.get("/{contact_id}/notes", response_model=ContactNoteListResponse)
async def list_contact_notes(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await _get_contact(db, contact_id, active_only=False)
    notes = (
        await db.execute(
            select(ContactNote)
            .options(selectinload(ContactNote.created_by_user))
            .where(ContactNote.contact_id == contact_id)
            .order_by(ContactNote.created_at.desc(), ContactNote.id.desc())
        )
    ).scalars().all()
    return ContactNoteListResponse(notes=[ContactNoteResponse.model_validate(n) for n in notes])
