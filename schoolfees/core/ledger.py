"""
Fee ledger rules.

Everything here is pure: given students and payments it computes new totals,
receipt numbers and dashboard aggregates. Persistence and the ordering of
multi-record writes live in the student and payment services.

Amounts are Decimal throughout. A negative balance means the student has
overpaid; it is reported, never clamped.
"""

import secrets
import string
import time
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from schoolfees.core.enums import EducationLevel
from schoolfees.core.exceptions import ValidationError
from schoolfees.core.schemas import DashboardStats, DebtorItem

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")

# Checked in order; the first matching substring wins
LEVEL_RULES: List[Tuple[EducationLevel, Tuple[str, ...]]] = [
    (EducationLevel.EARLY_YEARS, ("PP",)),
    (EducationLevel.LOWER_PRIMARY, ("Grade 1", "Grade 2", "Grade 3")),
    (EducationLevel.UPPER_PRIMARY, ("Grade 4", "Grade 5", "Grade 6")),
    (EducationLevel.JUNIOR_SECONDARY, ("Grade 7", "Grade 8", "Grade 9")),
]


def to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    return val if isinstance(val, Decimal) else Decimal(str(val))


def to_money(val, field: str = "Amount") -> Decimal:
    """Whole cents only. Anything the money columns would round or overflow is rejected."""
    amount = to_decimal(val)
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT or amount != amount.quantize(CENT):
        raise ValidationError(f"{field} must be at most {MAX_AMOUNT} with no more than 2 decimal places")
    return amount.quantize(CENT)


def fee_balance(total_fees, paid_fees) -> Decimal:
    return to_decimal(total_fees) - to_decimal(paid_fees)


def apply_payment(paid_fees, total_fees, amount) -> Tuple[Decimal, Decimal]:
    """Return (new_paid, new_balance) after a payment of `amount`."""
    amount = to_money(amount)
    if amount <= ZERO:
        raise ValidationError("Payment amount must be greater than zero")
    new_paid = to_decimal(paid_fees) + amount
    return new_paid, fee_balance(total_fees, new_paid)


def totals_from_payments(total_fees, payments: Iterable) -> Tuple[Decimal, Decimal]:
    """Recompute (paid, balance) from scratch out of a payment history."""
    paid = sum((to_decimal(p.amount) for p in payments), ZERO)
    return paid, fee_balance(total_fees, paid)


def generate_receipt_number() -> str:
    """
    RCP + last 8 digits of the millisecond clock + 2 random characters.
    Unique enough for humans; the receipt_number unique constraint is the real guard.
    """
    millis = str(time.time_ns() // 1_000_000)[-8:]
    alphabet = string.ascii_uppercase + string.digits
    return "RCP" + millis + "".join(secrets.choice(alphabet) for _ in range(2))


def education_level(grade: Optional[str]) -> EducationLevel:
    label = grade or ""
    for level, needles in LEVEL_RULES:
        if any(n in label for n in needles):
            return level
    return EducationLevel.OTHER


def group_by_level(students: Iterable) -> Dict[str, int]:
    counts: Dict[EducationLevel, int] = {}
    for s in students:
        level = education_level(s.grade)
        counts[level] = counts.get(level, 0) + 1
    # Bucket order, empty buckets omitted
    return {level.value: counts[level] for level in EducationLevel if level in counts}


def rank_debtors(students: Sequence, limit: int = 5) -> List:
    """Students owing money, largest balance first. sorted() is stable so ties keep list order."""
    owing = [s for s in students if to_decimal(s.fee_balance) > ZERO]
    return sorted(owing, key=lambda s: to_decimal(s.fee_balance), reverse=True)[:limit]


def collection_rate(total_collected: Decimal, total_expected: Decimal) -> float:
    if total_expected <= ZERO:
        return 0.0
    return round(float(total_collected / total_expected * 100), 1)


def payments_in_window(payments: Iterable, window_days: int, today: Optional[date] = None) -> List:
    today = today or date.today()
    start = today - timedelta(days=window_days)
    return [p for p in payments if start <= p.date <= today]


def compute_statistics(
    students: Sequence,
    payments: Sequence,
    window_days: int = 7,
    today: Optional[date] = None,
    top_n: int = 5,
) -> DashboardStats:
    total_outstanding = sum((to_decimal(s.fee_balance) for s in students), ZERO)
    total_collected = sum((to_decimal(s.paid_fees) for s in students), ZERO)
    total_expected = sum((to_decimal(s.total_fees) for s in students), ZERO)

    recent = payments_in_window(payments, window_days, today)

    return DashboardStats(
        total_students=len(students),
        total_outstanding=total_outstanding,
        total_collected=total_collected,
        total_expected=total_expected,
        collection_rate=collection_rate(total_collected, total_expected),
        students_with_balance=sum(1 for s in students if to_decimal(s.fee_balance) > ZERO),
        students_by_level=group_by_level(students),
        window_days=window_days,
        recent_payments_count=len(recent),
        recent_payments_total=sum((to_decimal(p.amount) for p in recent), ZERO),
        top_debtors=[
            DebtorItem(
                student_id=s.id,
                student_name=f"{s.first_name} {s.last_name}".strip(),
                grade=s.grade,
                fee_balance=to_decimal(s.fee_balance),
            )
            for s in rank_debtors(students, top_n)
        ],
        fully_paid=sum(1 for s in students if to_decimal(s.fee_balance) == ZERO),
        partially_paid=sum(
            1 for s in students if to_decimal(s.paid_fees) > ZERO and to_decimal(s.fee_balance) > ZERO
        ),
        not_paid=sum(1 for s in students if to_decimal(s.paid_fees) == ZERO),
        overpaid=sum(1 for s in students if to_decimal(s.fee_balance) < ZERO),
    )
