"""Payment: one fee transaction against a student. Append-only."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Numeric, String, Uuid

from schoolfees.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Payment(Base):
    """
    Name, class and guardian contact are snapshots taken when the payment was
    recorded. student_id has no foreign key: the ledger owns the cascade.
    """

    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    student_id = Column(Uuid, nullable=False, index=True)
    student_name = Column(String(255), nullable=False)
    student_class = Column(String(50), nullable=False)
    parent_name = Column(String(255), nullable=False, default="")
    parent_phone = Column(String(50), nullable=False, default="")
    mpesa_code = Column(String(50), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM
    payment_method = Column(String(50), nullable=False)
    receipt_number = Column(String(20), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
