"""Student schemas."""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolfees.core.schemas import StudentResponse


class StudentCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    grade: str = Field(..., min_length=1, max_length=50)
    admission_number: str = Field(..., min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    total_fees: Decimal = Field(..., ge=0)
    guardian_name: str = Field(..., min_length=1)
    guardian_phone: str = Field(..., min_length=1)
    guardian_email: str = ""
    relationship: str = "Parent"


class GuardianUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    relationship: Optional[str] = None


class StudentUpdate(BaseModel):
    """Grade changes go through transfer; paid_fees and fee_balance are ledger-owned."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    admission_number: Optional[str] = Field(None, min_length=1, max_length=50)
    date_of_birth: Optional[date] = None
    total_fees: Optional[Decimal] = Field(None, ge=0)
    guardian: Optional[GuardianUpdate] = None


class TransferRequest(BaseModel):
    new_grade: str = Field(..., min_length=1, max_length=50)


class TransferResponse(BaseModel):
    student: StudentResponse
    previous_grade: str
    payments_updated: int


class DeleteStudentResponse(BaseModel):
    success: bool = True
    student_id: UUID
    payments_deleted: int


class ReconcileResponse(BaseModel):
    student: StudentResponse
    payments_count: int
    paid_before: Decimal
    paid_after: Decimal
    payments_reclassified: int
