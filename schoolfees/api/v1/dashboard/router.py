from typing import Optional

from fastapi import APIRouter, Depends, Query

from schoolfees.auth.dependencies import get_current_principal
from schoolfees.auth.schemas import Principal
from schoolfees.core.schemas import DashboardStats
from schoolfees.db.records import RecordStore, get_record_store

from . import service

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardStats)
async def get_dashboard(
    window_days: Optional[int] = Query(None, ge=0, le=366, description="Recent payments window; defaults to 7 days"),
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> DashboardStats:
    return await service.get_dashboard(store, principal, window_days=window_days)
