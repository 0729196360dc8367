"""Payment service: recording payments against the ledger and notifying guardians."""

import logging
from datetime import date, datetime
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from schoolfees.api.v1.students.service import get_owned_student
from schoolfees.auth.schemas import Principal
from schoolfees.core import ledger
from schoolfees.core.config import settings
from schoolfees.core.enums import Collection
from schoolfees.core.exceptions import (
    NotFoundError,
    PartialFailureError,
    ServiceError,
    ValidationError,
)
from schoolfees.core.models import Payment
from schoolfees.core.notifications import (
    balance_alert_message,
    normalize_phone,
    payment_confirmation_message,
)
from schoolfees.core.schemas import PaymentResponse, StudentResponse
from schoolfees.core.sms import AfricasTalkingGateway
from schoolfees.db.records import RecordStore

from .schemas import NotificationOutcome, PaymentCreate

logger = logging.getLogger(__name__)

RECEIPT_ATTEMPTS = 5


async def _create_payment(store: RecordStore, data: dict) -> Payment:
    """Insert the payment, drawing a fresh receipt number if the last one collided."""
    for attempt in range(RECEIPT_ATTEMPTS):
        try:
            return await store.create_record(
                Collection.PAYMENTS, {**data, "receipt_number": ledger.generate_receipt_number()}
            )
        except IntegrityError:
            logger.warning("Receipt number collision (attempt %d)", attempt + 1)
    raise ServiceError("Could not generate a unique receipt number")


async def record_payment(
    store: RecordStore, principal: Principal, payload: PaymentCreate
) -> Tuple[StudentResponse, PaymentResponse]:
    """
    Write the payment, then move the student's totals by the same amount.

    Everything is validated before the first write. If the student update fails
    after the payment is stored, PartialFailureError names the payment and the
    student can be repaired with reconcile.
    """
    amount = ledger.to_money(payload.amount)
    if amount <= ledger.ZERO:
        raise ValidationError("Payment amount must be greater than zero")
    mpesa_code = (payload.mpesa_code or "").strip().upper()
    if not mpesa_code:
        raise ValidationError("M-Pesa code is required")
    now = datetime.now()
    paid_on = payload.date or now.date()
    if paid_on > date.today():
        raise ValidationError("Payment date cannot be in the future")

    student = await get_owned_student(store, principal, payload.student_id)
    student_id = student.id
    new_paid, new_balance = ledger.apply_payment(student.paid_fees, student.total_fees, amount)
    guardian = (student.guardians or [{}])[0]

    payment = await _create_payment(
        store,
        {
            "owner_id": principal.id,
            "student_id": student_id,
            "student_name": f"{student.first_name} {student.last_name}".strip(),
            "student_class": student.grade,
            "parent_name": guardian.get("name", ""),
            "parent_phone": guardian.get("phone", ""),
            "mpesa_code": mpesa_code,
            "amount": amount,
            "date": paid_on,
            "time": payload.time or now.strftime("%H:%M"),
            "payment_method": payload.payment_method or "",
        },
    )
    recorded = PaymentResponse.model_validate(payment)

    try:
        student = await store.update_record(
            Collection.STUDENTS, student_id, {"paid_fees": new_paid, "fee_balance": new_balance}
        )
    except ServiceError as e:
        logger.error("Payment %s stored but student %s totals not updated: %s", recorded.id, student_id, e.message)
        raise PartialFailureError(
            "Payment recorded but the student's fee totals were not updated; reconcile the student",
            operation="record_payment",
            primary_id=recorded.id,
            failed_ids=[student_id],
        ) from e

    logger.info("Recorded payment %s for student %s, receipt %s", recorded.id, student_id, recorded.receipt_number)
    return StudentResponse.model_validate(student), recorded


async def notify_payment(
    gateway: AfricasTalkingGateway, payment: PaymentResponse, student: StudentResponse
) -> NotificationOutcome:
    """
    Send the receipt SMS and, for large balances, a balance alert.
    Never raises: the payment is already recorded whatever happens here.
    """
    phone = normalize_phone(payment.parent_phone, settings.default_country_code)
    if not phone:
        return NotificationOutcome(attempted=False, error="No guardian phone number on record")

    outcome = NotificationOutcome(attempted=True)
    try:
        report = await gateway.send([phone], payment_confirmation_message(payment))
        outcome.sent = report.successful > 0
        if student.fee_balance > settings.balance_alert_threshold:
            alert = await gateway.send([phone], balance_alert_message(payment, student.fee_balance))
            outcome.balance_alert_sent = alert.successful > 0
    except ServiceError as e:
        logger.warning("Guardian notification for payment %s failed: %s", payment.id, e.message)
        outcome.error = e.message
    if outcome.attempted and not outcome.sent and outcome.error is None:
        outcome.error = "SMS gateway rejected the message"
    return outcome


async def list_payments(store: RecordStore, principal: Principal) -> List[PaymentResponse]:
    payments = await store.list_records(
        Collection.PAYMENTS, {"owner_id": principal.id}, order_by="created_at", descending=True
    )
    return [PaymentResponse.model_validate(p) for p in payments]


async def get_payment(store: RecordStore, principal: Principal, payment_id: UUID) -> PaymentResponse:
    payment = await store.get_record(Collection.PAYMENTS, payment_id)
    if not payment or payment.owner_id != principal.id:
        raise NotFoundError("Payment not found")
    return PaymentResponse.model_validate(payment)
