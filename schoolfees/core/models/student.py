"""Student record: identity, fee totals and the embedded guardian list."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, Numeric, String, UniqueConstraint, Uuid

from schoolfees.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Student(Base):
    """
    Denormalized student document. fee_balance is stored, not derived on read,
    and must equal total_fees - paid_fees after every ledger mutation.
    """

    __tablename__ = "students"
    __table_args__ = (
        # Admission number is unique within one owner's students
        UniqueConstraint("owner_id", "admission_number", name="uq_student_owner_admission"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    grade = Column(String(50), nullable=False)
    admission_number = Column(String(50), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    # [{id, name, phone, email, relationship}]; index 0 is the primary guardian
    guardians = Column(JSON, nullable=False, default=list)
    total_fees = Column(Numeric(12, 2), nullable=False, default=0)
    paid_fees = Column(Numeric(12, 2), nullable=False, default=0)
    fee_balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
