from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Guardian(BaseModel):
    """Guardian contact embedded in a student. No lifecycle of its own."""

    id: str
    name: str
    phone: str = ""
    email: str = ""
    relationship: str = ""


class StudentResponse(BaseModel):
    id: UUID
    owner_id: UUID
    first_name: str
    last_name: str
    grade: str
    admission_number: str
    date_of_birth: Optional[date_type] = None
    guardians: List[Guardian] = Field(default_factory=list)
    total_fees: Decimal
    paid_fees: Decimal
    fee_balance: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def primary_guardian(self) -> Optional[Guardian]:
        return self.guardians[0] if self.guardians else None


class PaymentResponse(BaseModel):
    id: UUID
    owner_id: UUID
    student_id: UUID
    student_name: str
    student_class: str
    parent_name: str
    parent_phone: str
    mpesa_code: str
    amount: Decimal
    date: date_type
    time: str
    payment_method: str
    receipt_number: str
    created_at: datetime

    class Config:
        from_attributes = True


class DebtorItem(BaseModel):
    student_id: UUID
    student_name: str
    grade: str
    fee_balance: Decimal


class DashboardStats(BaseModel):
    """Aggregates recomputed from the full record sets on every read."""

    total_students: int
    total_outstanding: Decimal
    total_collected: Decimal
    total_expected: Decimal
    collection_rate: float = Field(..., description="Percent of expected fees collected, one decimal place")
    students_with_balance: int
    students_by_level: Dict[str, int]
    window_days: int
    recent_payments_count: int
    recent_payments_total: Decimal
    top_debtors: List[DebtorItem]
    fully_paid: int
    partially_paid: int
    not_paid: int
    overpaid: int
