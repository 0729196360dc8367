"""SMS service: plain bulk sends and personalised guardian messages."""

import logging
from typing import List

from schoolfees.auth.schemas import Principal
from schoolfees.core import ledger
from schoolfees.core.config import settings
from schoolfees.core.enums import Collection
from schoolfees.core.exceptions import TransportError, ValidationError
from schoolfees.core.notifications import compose, normalize_phone
from schoolfees.core.sms import AfricasTalkingGateway, DeliveryReport, RecipientStatus
from schoolfees.db.records import RecordStore

from .schemas import BulkSmsRequest, GuardianSmsRequest, GuardianSmsResponse, SmsResponse

logger = logging.getLogger(__name__)


def _response(report: DeliveryReport) -> SmsResponse:
    return SmsResponse(total=report.total, successful=report.successful, failed=report.failed, details=report)


async def send_bulk(gateway: AfricasTalkingGateway, payload: BulkSmsRequest) -> SmsResponse:
    numbers: List[str] = []
    for raw in payload.numbers:
        phone = normalize_phone(raw, settings.default_country_code)
        if phone and phone not in numbers:
            numbers.append(phone)
    if not numbers:
        raise ValidationError("No valid phone numbers provided")
    return _response(await gateway.send(numbers, payload.message))


async def _select_students(store: RecordStore, principal: Principal, payload: GuardianSmsRequest) -> List:
    students = await store.list_records(Collection.STUDENTS, {"owner_id": principal.id}, order_by="created_at")
    if payload.student_ids:
        wanted = set(payload.student_ids)
        return [s for s in students if s.id in wanted]
    return [s for s in students if ledger.to_decimal(s.fee_balance) > ledger.ZERO]


async def send_to_guardians(
    store: RecordStore,
    principal: Principal,
    gateway: AfricasTalkingGateway,
    payload: GuardianSmsRequest,
) -> GuardianSmsResponse:
    """
    One composed message per student, sent to the primary guardian.
    A gateway outage for one recipient is counted as a failure and the rest still go out.
    """
    students = await _select_students(store, principal, payload)
    if not students:
        raise ValidationError("No recipients selected")

    report = DeliveryReport()
    skipped = []
    for student in students:
        guardian = (student.guardians or [None])[0]
        phone = normalize_phone(guardian.get("phone") if guardian else None, settings.default_country_code)
        if not phone:
            skipped.append(student.id)
            continue
        message = compose(payload.message, student, guardian, payload.values)
        try:
            report = report.merge(await gateway.send([phone], message))
        except TransportError as e:
            logger.warning("SMS to guardian of student %s failed: %s", student.id, e.message)
            report = report.merge(
                DeliveryReport(total=1, failed=1, recipients=[RecipientStatus(number=phone, status="TransportError")])
            )

    logger.info("Guardian SMS run: %d sent, %d failed, %d skipped", report.successful, report.failed, len(skipped))
    return GuardianSmsResponse(
        total=report.total,
        successful=report.successful,
        failed=report.failed,
        details=report,
        skipped=skipped,
    )
