"""SMS router: bulk send, per-guardian send, template catalogue."""

from fastapi import APIRouter, Depends, HTTPException

from schoolfees.auth.dependencies import get_current_principal
from schoolfees.auth.schemas import Principal
from schoolfees.core.exceptions import ServiceError
from schoolfees.core.notifications import FEE_REMINDER_TEMPLATES, GENERAL_TEMPLATES
from schoolfees.core.sms import AfricasTalkingGateway, get_sms_gateway
from schoolfees.db.records import RecordStore, get_record_store

from .schemas import BulkSmsRequest, GuardianSmsRequest, GuardianSmsResponse, SmsResponse, TemplateCatalog
from . import service

router = APIRouter(prefix="/api/v1/sms", tags=["sms"])


@router.post("", response_model=SmsResponse)
async def send_sms(
    payload: BulkSmsRequest,
    gateway: AfricasTalkingGateway = Depends(get_sms_gateway),
    principal: Principal = Depends(get_current_principal),
) -> SmsResponse:
    try:
        return await service.send_bulk(gateway, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/guardians", response_model=GuardianSmsResponse)
async def send_guardian_sms(
    payload: GuardianSmsRequest,
    store: RecordStore = Depends(get_record_store),
    gateway: AfricasTalkingGateway = Depends(get_sms_gateway),
    principal: Principal = Depends(get_current_principal),
) -> GuardianSmsResponse:
    try:
        return await service.send_to_guardians(store, principal, gateway, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/templates", response_model=TemplateCatalog)
async def list_templates(
    principal: Principal = Depends(get_current_principal),
) -> TemplateCatalog:
    return TemplateCatalog(fee=FEE_REMINDER_TEMPLATES, general=GENERAL_TEMPLATES)
