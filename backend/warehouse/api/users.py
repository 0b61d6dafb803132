# backend/warehouse/api/users.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.api.deps import get_cache, get_current_user, require_admin
from warehouse.core.cache import DASHBOARD, LookupCache
from warehouse.core.database import get_db
from warehouse.core.security import hash_password
from warehouse.models import MaterialMovement, User
from warehouse.schemas.auth import UserCreate, UserListResponse, UserResponse, UserUpdate
from warehouse.schemas.common import MessageResponse, Pagination

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[str] = None,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if search:
        query = query.where(
            or_(
                User.name.ilike(f"%{search}%"),
                User.email.ilike(f"%{search}%"),
            )
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    query = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit)
    users = (await db.execute(query)).scalars().all()

    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        name=user_data.name,
        email=user_data.email,
        password_hash=hash_password(user_data.password),
        role=user_data.role,
        whatsapp_phone=user_data.whatsapp_phone,
    )
    db.add(user)
    await db.commit()
    cache.invalidate(DASHBOARD)
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changes = user_data.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for key, value in changes.items():
        if value is not None:
            setattr(user, key, value)

    await db.commit()
    cache.invalidate(DASHBOARD)
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete yourself")

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    movements = await db.scalar(select(func.count(MaterialMovement.id)).where(MaterialMovement.user_id == user_id))
    if movements:
        raise HTTPException(status_code=400, detail="User has stock movement history; deactivate instead")

    await db.delete(user)
    await db.commit()
    cache.invalidate(DASHBOARD)
    return MessageResponse(message="User deleted")
