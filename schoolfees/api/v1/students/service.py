"""
Student service: CRUD plus the multi-record ledger operations (delete, transfer, reconcile).

The storage collaborator commits one record at a time. Operations that touch
a student and its payments therefore write the student first and then walk the
payments; every payment step only moves a record toward the target state, so
re-running an interrupted operation finishes the job instead of doubling it.
"""

import logging
import uuid
from typing import List, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy.exc import IntegrityError

from schoolfees.auth.schemas import Principal
from schoolfees.core import ledger
from schoolfees.core.enums import Collection
from schoolfees.core.exceptions import (
    NotFoundError,
    PartialFailureError,
    ServiceError,
    ValidationError,
)
from schoolfees.core.models import Student
from schoolfees.core.schemas import PaymentResponse, StudentResponse
from schoolfees.db.records import RecordStore

from .schemas import (
    DeleteStudentResponse,
    ReconcileResponse,
    StudentCreate,
    StudentUpdate,
    TransferResponse,
)

logger = logging.getLogger(__name__)

DUPLICATE_ADMISSION_MESSAGE = "A student with this admission number already exists"


def _to_response(student: Student) -> StudentResponse:
    return StudentResponse.model_validate(student)


async def get_owned_student(store: RecordStore, principal: Principal, student_id: UUID) -> Student:
    student = await store.get_record(Collection.STUDENTS, student_id)
    if not student or student.owner_id != principal.id:
        raise NotFoundError("Student not found")
    return student


async def list_student_payment_records(store: RecordStore, principal: Principal, student_id: UUID) -> List:
    return await store.list_records(
        Collection.PAYMENTS,
        {"owner_id": principal.id, "student_id": student_id},
        order_by="created_at",
        descending=True,
    )


async def _ensure_admission_number_free(store: RecordStore, principal: Principal, admission_number: str) -> None:
    existing = await store.list_records(
        Collection.STUDENTS,
        {"owner_id": principal.id, "admission_number": admission_number},
    )
    if existing:
        raise ValidationError(DUPLICATE_ADMISSION_MESSAGE, status.HTTP_409_CONFLICT)


async def create_student(store: RecordStore, principal: Principal, payload: StudentCreate) -> StudentResponse:
    admission_number = payload.admission_number.strip()
    total_fees = ledger.to_money(payload.total_fees, "Total fees")
    await _ensure_admission_number_free(store, principal, admission_number)

    guardian = {
        "id": uuid.uuid4().hex,
        "name": payload.guardian_name.strip(),
        "phone": payload.guardian_phone.strip(),
        "email": (payload.guardian_email or "").strip(),
        "relationship": (payload.relationship or "").strip(),
    }
    try:
        student = await store.create_record(
            Collection.STUDENTS,
            {
                "owner_id": principal.id,
                "first_name": payload.first_name.strip(),
                "last_name": payload.last_name.strip(),
                "grade": payload.grade.strip(),
                "admission_number": admission_number,
                "date_of_birth": payload.date_of_birth,
                "guardians": [guardian],
                "total_fees": total_fees,
                "paid_fees": ledger.ZERO,
                "fee_balance": ledger.fee_balance(total_fees, ledger.ZERO),
            },
        )
    except IntegrityError:
        raise ValidationError(DUPLICATE_ADMISSION_MESSAGE, status.HTTP_409_CONFLICT)
    logger.info("Created student %s (%s)", student.id, student.grade)
    return _to_response(student)


async def list_students(store: RecordStore, principal: Principal) -> List[StudentResponse]:
    students = await store.list_records(Collection.STUDENTS, {"owner_id": principal.id}, order_by="created_at")
    return [_to_response(s) for s in students]


async def get_student(store: RecordStore, principal: Principal, student_id: UUID) -> StudentResponse:
    return _to_response(await get_owned_student(store, principal, student_id))


async def update_student(
    store: RecordStore, principal: Principal, student_id: UUID, payload: StudentUpdate
) -> StudentResponse:
    student = await get_owned_student(store, principal, student_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"guardian"})

    if "admission_number" in changes:
        changes["admission_number"] = changes["admission_number"].strip()
        if changes["admission_number"] != student.admission_number:
            await _ensure_admission_number_free(store, principal, changes["admission_number"])

    if changes.get("total_fees") is not None:
        changes["total_fees"] = ledger.to_money(changes["total_fees"], "Total fees")
        changes["fee_balance"] = ledger.fee_balance(changes["total_fees"], student.paid_fees)
    else:
        changes.pop("total_fees", None)

    if payload.guardian is not None:
        guardians = [dict(g) for g in (student.guardians or [])]
        primary = guardians[0] if guardians else {"id": uuid.uuid4().hex, "name": "", "phone": "", "email": "", "relationship": ""}
        primary.update({k: v.strip() for k, v in payload.guardian.model_dump(exclude_none=True).items()})
        changes["guardians"] = [primary] + guardians[1:]

    if not changes:
        return _to_response(student)
    try:
        student = await store.update_record(Collection.STUDENTS, student.id, changes)
    except IntegrityError:
        raise ValidationError(DUPLICATE_ADMISSION_MESSAGE, status.HTTP_409_CONFLICT)
    return _to_response(student)


async def _propagate_class(
    store: RecordStore, payments: List, grade: str
) -> Tuple[int, List[UUID]]:
    """Set student_class = grade on every payment that differs. Returns (updated, failed_ids)."""
    # Ids are read up front: a failed commit expires every loaded record
    pending = [p.id for p in payments if p.student_class != grade]
    updated = 0
    failed: List[UUID] = []
    for payment_id in pending:
        try:
            await store.update_record(Collection.PAYMENTS, payment_id, {"student_class": grade})
            updated += 1
        except ServiceError as e:
            logger.warning("Could not reclassify payment %s: %s", payment_id, e.message)
            failed.append(payment_id)
    return updated, failed


async def transfer_student(
    store: RecordStore, principal: Principal, student_id: UUID, new_grade: str
) -> TransferResponse:
    """
    Move a student to new_grade and rewrite the class snapshot on their payments.
    Transferring to the current grade is allowed and simply re-runs the payment pass.
    """
    new_grade = new_grade.strip()
    if not new_grade:
        raise ValidationError("New grade is required")
    student = await get_owned_student(store, principal, student_id)
    previous_grade = student.grade

    if student.grade != new_grade:
        student = await store.update_record(Collection.STUDENTS, student_id, {"grade": new_grade})
    moved = _to_response(student)

    payments = await list_student_payment_records(store, principal, student_id)
    updated, failed = await _propagate_class(store, payments, new_grade)
    if failed:
        raise PartialFailureError(
            f"Student moved to {new_grade} but {len(failed)} payment(s) still show the old class; retry the transfer",
            operation="transfer_student",
            primary_id=student_id,
            failed_ids=failed,
        )
    logger.info("Transferred student %s from %s to %s (%d payments updated)", student_id, previous_grade, new_grade, updated)
    return TransferResponse(student=moved, previous_grade=previous_grade, payments_updated=updated)


async def delete_student(store: RecordStore, principal: Principal, student_id: UUID) -> DeleteStudentResponse:
    """
    Delete the student, then cascade to their payments.
    A retry after a partial failure finds the student already gone and finishes the cascade.
    """
    student = await store.get_record(Collection.STUDENTS, student_id)
    if student is not None and student.owner_id != principal.id:
        raise NotFoundError("Student not found")
    payments = await list_student_payment_records(store, principal, student_id)
    if student is None and not payments:
        raise NotFoundError("Student not found")

    payment_ids = [p.id for p in payments]

    if student is not None:
        await store.delete_record(Collection.STUDENTS, student_id)

    failed: List[UUID] = []
    for payment_id in payment_ids:
        try:
            await store.delete_record(Collection.PAYMENTS, payment_id)
        except ServiceError as e:
            logger.warning("Could not delete payment %s of student %s: %s", payment_id, student_id, e.message)
            failed.append(payment_id)
    if failed:
        raise PartialFailureError(
            f"Student deleted but {len(failed)} payment(s) could not be removed; retry the delete",
            operation="delete_student",
            primary_id=student_id,
            failed_ids=failed,
        )
    logger.info("Deleted student %s and %d payment(s)", student_id, len(payment_ids))
    return DeleteStudentResponse(student_id=student_id, payments_deleted=len(payment_ids))


async def reconcile_student(store: RecordStore, principal: Principal, student_id: UUID) -> ReconcileResponse:
    """
    Repair entry point: rebuild paid_fees/fee_balance from the payment history and
    re-apply the current grade to payment snapshots. Safe to run any number of times.
    """
    student = await get_owned_student(store, principal, student_id)
    payments = await list_student_payment_records(store, principal, student_id)
    paid_before = ledger.to_decimal(student.paid_fees)
    paid, balance = ledger.totals_from_payments(student.total_fees, payments)

    if paid != paid_before or balance != ledger.to_decimal(student.fee_balance):
        logger.warning("Student %s paid_fees drifted: stored %s, payments sum %s", student_id, paid_before, paid)
        student = await store.update_record(
            Collection.STUDENTS, student_id, {"paid_fees": paid, "fee_balance": balance}
        )
    repaired = _to_response(student)

    updated, failed = await _propagate_class(store, payments, repaired.grade)
    if failed:
        raise PartialFailureError(
            f"Totals repaired but {len(failed)} payment(s) could not be reclassified; run reconcile again",
            operation="reconcile_student",
            primary_id=student_id,
            failed_ids=failed,
        )
    return ReconcileResponse(
        student=repaired,
        payments_count=len(payments),
        paid_before=paid_before,
        paid_after=paid,
        payments_reclassified=updated,
    )


async def list_student_payments(store: RecordStore, principal: Principal, student_id: UUID) -> List[PaymentResponse]:
    student = await get_owned_student(store, principal, student_id)
    payments = await list_student_payment_records(store, principal, student.id)
    return [PaymentResponse.model_validate(p) for p in payments]
