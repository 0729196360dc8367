"""Payment schemas."""

from datetime import date as date_type
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolfees.core.enums import DEFAULT_PAYMENT_METHOD
from schoolfees.core.schemas import PaymentResponse, StudentResponse


class PaymentCreate(BaseModel):
    """
    amount is checked by the ledger (not here) so a non-positive or sub-cent
    amount is a ledger ValidationError rather than a schema error.
    """

    student_id: UUID
    amount: Decimal
    mpesa_code: str = ""
    date: Optional[date_type] = None  # defaults to today
    time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")  # HH:MM, defaults to now
    payment_method: str = DEFAULT_PAYMENT_METHOD
    notify_guardian: bool = True


class NotificationOutcome(BaseModel):
    attempted: bool = False
    sent: bool = False
    balance_alert_sent: bool = False
    error: Optional[str] = None


class PaymentRecordedResponse(BaseModel):
    payment: PaymentResponse
    student: StudentResponse
    notification: NotificationOutcome
