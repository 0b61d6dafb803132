# backend/warehouse/api/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from warehouse.api.deps import get_cache, require_admin
from warehouse.core.cache import DASHBOARD, LookupCache
from warehouse.core.database import get_db
from warehouse.models.user import User
from warehouse.schemas.dashboard import DashboardSummary
from warehouse.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary)
async def dashboard_summary(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    cache: LookupCache = Depends(get_cache),
):
    key = f"{DASHBOARD}:summary"
    cached = cache.get(key)
    if cached is not None:
        return cached

    payload = (await DashboardService(db).summary()).model_dump(by_alias=True, mode="json")
    cache.set(key, payload)
    return payload
