# backend/warehouse/api/auth.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.api.deps import get_cache, get_current_user, require_admin
from warehouse.core.cache import DASHBOARD, LookupCache
from warehouse.core.database import get_db
from warehouse.core.security import create_access_token, hash_password, verify_password
from warehouse.models.user import User
from warehouse.schemas.auth import LoginRequest, LoginResponse, UserCreate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == req.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(req.password, user.password_hash):
        logger.info(f"Login failed for {req.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is disabled")

    token = create_access_token(data={"sub": str(user.id)})
    logger.info(f"Login successful: user {user.id} ({user.role})")
    return LoginResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    req: UserCreate,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    """Create an account (admin only)."""
    result = await db.execute(select(User).where(User.email == req.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        name=req.name,
        email=req.email,
        password_hash=hash_password(req.password),
        role=req.role,
        whatsapp_phone=req.whatsapp_phone,
    )
    db.add(user)
    await db.commit()
    cache.invalidate(DASHBOARD)
    await db.refresh(user)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
