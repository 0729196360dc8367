"""
Africa's Talking SMS gateway.

One POST per send() call; the gateway fans the message out to every number and
reports a status per recipient. No retries here: a transport failure is raised
to the caller as TransportError.
"""

import logging
from typing import List, Optional

import httpx
from fastapi import status
from pydantic import BaseModel, Field

from schoolfees.core.config import settings
from schoolfees.core.exceptions import ServiceError, TransportError, ValidationError

logger = logging.getLogger(__name__)

LIVE_URL = "https://api.africastalking.com/version1/messaging"
SANDBOX_URL = "https://api.sandbox.africastalking.com/version1/messaging"

SUCCESS_STATUS = "Success"


class RecipientStatus(BaseModel):
    number: str
    status: str
    status_code: Optional[int] = None
    message_id: Optional[str] = None
    cost: Optional[str] = None


class DeliveryReport(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    recipients: List[RecipientStatus] = Field(default_factory=list)

    def merge(self, other: "DeliveryReport") -> "DeliveryReport":
        return DeliveryReport(
            total=self.total + other.total,
            successful=self.successful + other.successful,
            failed=self.failed + other.failed,
            recipients=self.recipients + other.recipients,
        )


def parse_delivery_report(payload: dict) -> DeliveryReport:
    recipients = [
        RecipientStatus(
            number=r.get("number", ""),
            status=r.get("status", "Unknown"),
            status_code=r.get("statusCode"),
            message_id=r.get("messageId"),
            cost=r.get("cost"),
        )
        for r in (payload.get("SMSMessageData") or {}).get("Recipients") or []
    ]
    successful = sum(1 for r in recipients if r.status == SUCCESS_STATUS)
    return DeliveryReport(
        total=len(recipients),
        successful=successful,
        failed=len(recipients) - successful,
        recipients=recipients,
    )


class AfricasTalkingGateway:
    def __init__(
        self,
        username: Optional[str],
        api_key: Optional[str],
        sender_id: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.username = username
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return SANDBOX_URL if self.username == "sandbox" else LIVE_URL

    async def send(self, phone_numbers: List[str], message: str) -> DeliveryReport:
        numbers = [n.strip() for n in phone_numbers if n and n.strip()]
        if not numbers:
            raise ValidationError("No phone numbers provided")
        if not message or not message.strip():
            raise ValidationError("No message provided")
        if not self.username or not self.api_key:
            raise ServiceError("SMS service not configured", status.HTTP_503_SERVICE_UNAVAILABLE)

        form = {"username": self.username, "to": ",".join(numbers), "message": message}
        if self.sender_id:
            form["from"] = self.sender_id
        headers = {"apiKey": self.api_key, "Accept": "application/json"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, data=form, headers=headers)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error("SMS gateway request failed: %s", e)
            raise TransportError("SMS gateway unreachable") from e
        except ValueError as e:
            logger.error("SMS gateway returned a non-JSON body")
            raise TransportError("SMS gateway returned an invalid response") from e

        report = parse_delivery_report(payload)
        logger.info(
            "SMS sent to %d recipient(s): %d successful, %d failed",
            report.total,
            report.successful,
            report.failed,
        )
        return report


def get_sms_gateway() -> AfricasTalkingGateway:
    return AfricasTalkingGateway(
        username=settings.africastalking_username,
        api_key=settings.africastalking_api_key,
        sender_id=settings.africastalking_sender_id,
        timeout=settings.sms_timeout_seconds,
    )
