"""Students router: CRUD, transfer, reconcile, cascade delete, payment history."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from schoolfees.auth.dependencies import get_current_principal, require_roles
from schoolfees.auth.schemas import Principal
from schoolfees.core.exceptions import ServiceError
from schoolfees.core.schemas import PaymentResponse, StudentResponse
from schoolfees.db.records import RecordStore, get_record_store

from .schemas import (
    DeleteStudentResponse,
    ReconcileResponse,
    StudentCreate,
    StudentUpdate,
    TransferRequest,
    TransferResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    payload: StudentCreate,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> StudentResponse:
    try:
        return await service.create_student(store, principal, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=List[StudentResponse])
async def list_students(
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> List[StudentResponse]:
    return await service.list_students(store, principal)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: UUID,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> StudentResponse:
    try:
        return await service.get_student(store, principal, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> StudentResponse:
    try:
        return await service.update_student(store, principal, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{student_id}", response_model=DeleteStudentResponse)
async def delete_student(
    student_id: UUID,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(require_roles("admin", "director")),
) -> DeleteStudentResponse:
    """Delete the student and every payment recorded against them."""
    try:
        return await service.delete_student(store, principal, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{student_id}/transfer", response_model=TransferResponse)
async def transfer_student(
    student_id: UUID,
    payload: TransferRequest,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> TransferResponse:
    try:
        return await service.transfer_student(store, principal, student_id, payload.new_grade)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{student_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_student(
    student_id: UUID,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> ReconcileResponse:
    """Rebuild fee totals from payment history and fix payment class snapshots."""
    try:
        return await service.reconcile_student(store, principal, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{student_id}/payments", response_model=List[PaymentResponse])
async def list_student_payments(
    student_id: UUID,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> List[PaymentResponse]:
    try:
        return await service.list_student_payments(store, principal, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
