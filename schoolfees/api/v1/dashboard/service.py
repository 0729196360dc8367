"""Dashboard service: loads the principal's records and hands them to the ledger aggregates."""

from datetime import date
from typing import Optional

from schoolfees.auth.schemas import Principal
from schoolfees.core import ledger
from schoolfees.core.config import settings
from schoolfees.core.enums import Collection
from schoolfees.core.schemas import DashboardStats
from schoolfees.db.records import RecordStore


async def get_dashboard(
    store: RecordStore,
    principal: Principal,
    window_days: Optional[int] = None,
    today: Optional[date] = None,
) -> DashboardStats:
    # Two independent reads; not a consistent snapshot, which is fine for display numbers
    students = await store.list_records(Collection.STUDENTS, {"owner_id": principal.id}, order_by="created_at")
    payments = await store.list_records(Collection.PAYMENTS, {"owner_id": principal.id})
    return ledger.compute_statistics(
        students,
        payments,
        window_days=window_days if window_days is not None else settings.recent_payments_window_days,
        today=today,
        top_n=settings.top_debtors_limit,
    )
