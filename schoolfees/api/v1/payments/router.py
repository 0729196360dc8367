"""Payments router: record, list, fetch."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from schoolfees.auth.dependencies import get_current_principal
from schoolfees.auth.schemas import Principal
from schoolfees.core.exceptions import ServiceError
from schoolfees.core.schemas import PaymentResponse
from schoolfees.core.sms import AfricasTalkingGateway, get_sms_gateway
from schoolfees.db.records import RecordStore, get_record_store

from .schemas import NotificationOutcome, PaymentCreate, PaymentRecordedResponse
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentRecordedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreate,
    store: RecordStore = Depends(get_record_store),
    gateway: AfricasTalkingGateway = Depends(get_sms_gateway),
    principal: Principal = Depends(get_current_principal),
) -> PaymentRecordedResponse:
    """Record a payment; the guardian SMS is reported separately and never fails the request."""
    try:
        student, payment = await service.record_payment(store, principal, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    notification = NotificationOutcome()
    if payload.notify_guardian:
        notification = await service.notify_payment(gateway, payment, student)
    return PaymentRecordedResponse(payment=payment, student=student, notification=notification)


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> List[PaymentResponse]:
    return await service.list_payments(store, principal)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    store: RecordStore = Depends(get_record_store),
    principal: Principal = Depends(get_current_principal),
) -> PaymentResponse:
    try:
        return await service.get_payment(store, principal, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
