"""SMS schemas."""

from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel, Field

from schoolfees.core.sms import DeliveryReport


class BulkSmsRequest(BaseModel):
    numbers: List[str] = Field(..., min_length=1, description="E.164 numbers, e.g. +2547...")
    message: str = Field(..., min_length=1)


class GuardianSmsRequest(BaseModel):
    """Empty student_ids means every student who still owes fees."""

    student_ids: List[UUID] = Field(default_factory=list)
    message: str = Field(..., min_length=1, description="Template with [StudentName], [Class], [Balance], ...")
    values: Dict[str, str] = Field(default_factory=dict, description="Extra placeholders, e.g. {\"Date\": \"5 Jan\"}")


class SmsResponse(BaseModel):
    ok: bool = True
    total: int
    successful: int
    failed: int
    details: DeliveryReport


class GuardianSmsResponse(SmsResponse):
    skipped: List[UUID] = Field(default_factory=list, description="Students without a guardian phone")


class TemplateCatalog(BaseModel):
    fee: Dict[str, str]
    general: Dict[str, str]
