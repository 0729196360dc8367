"""
Guardian message composition.

compose() is a literal placeholder substitution: [StudentName], [Class] and
[Balance] come from the student, [GuardianName]/[ParentName] from the
guardian, and anything else ([Date], [Time], [Amount], ...) from the
caller-supplied values table. Unknown tokens are left untouched. Nothing in
this module talks to the network.
"""

import re
from decimal import Decimal
from typing import Dict, Optional

from schoolfees.core.ledger import to_decimal


TOKEN_PATTERN = re.compile(r"\[([^\[\]]+)\]")

FEE_REMINDER_TEMPLATES: Dict[str, str] = {
    "Gentle Reminder": (
        "Dear parent of [StudentName], this is a reminder that [StudentName] has an outstanding fee "
        "balance of KES [Balance]. Please clear the balance at your earliest convenience. Thank you."
    ),
    "Urgent Payment": (
        "Dear parent of [StudentName] ([Class]), kindly settle the outstanding fee balance of KES [Balance] "
        "immediately. Contact the school office for payment arrangements. Thank you."
    ),
    "Deadline Notice": (
        "Dear parent, [StudentName] in [Class] has a fee balance of KES [Balance]. Payment deadline is "
        "approaching. Please clear dues by end of week to avoid service interruption."
    ),
    "Payment Plan": (
        "Dear parent of [StudentName], your child has a fee balance of KES [Balance]. If full payment is "
        "challenging, please visit the office to arrange a payment plan. We are here to help."
    ),
    "Fee Statement": (
        "Dear parent, [StudentName] ([Class]) currently has an outstanding balance of KES [Balance]. For a "
        "detailed fee statement, please contact the school office or visit us."
    ),
    "Term Fees Due": (
        "Dear parent of [StudentName] in [Class], term fees are due. Current balance: KES [Balance]. Please "
        "ensure timely payment for uninterrupted learning. Thank you for your cooperation."
    ),
}

GENERAL_TEMPLATES: Dict[str, str] = {
    "School Reopening": (
        "Dear parent of [StudentName] ([Class]), this is to inform you that school reopens on [Date]. Students "
        "should report by 8:00 AM. Kindly ensure [StudentName] has all required materials. Thank you."
    ),
    "School Closing": (
        "Dear parent, [StudentName] ([Class]) will close for the term on [Date] at 12:00 PM. Please arrange for "
        "timely pick-up. We wish you a wonderful holiday season!"
    ),
    "School Event": (
        "Dear parent of [StudentName], we have an upcoming [EventName] on [Date] at [Time]. All students in "
        "[Class] are required to attend. For more details, contact the school office."
    ),
    "Exam Fees": (
        "Dear parent, [StudentName] ([Class]) is required to pay exam fees of KES [Amount] by [DeadlineDate]. "
        "This covers examination materials and processing. Please clear payment before the deadline."
    ),
    "Report Cards": (
        "Dear parent of [StudentName], academic reports for [Class] are ready for collection. Please visit the "
        "school office from [Date] to pick up [StudentName]'s report card. Thank you."
    ),
    "Parents Meeting": (
        "Dear parent, we have a parents meeting scheduled for [Date] at [Time]. We will discuss [StudentName]'s "
        "progress in [Class] and other important matters. Your attendance is highly appreciated."
    ),
    "General Announcement": (
        "Dear parent of [StudentName] ([Class]), this is to inform you that [AnnouncementDetails]. For more "
        "information, please contact the school office. Thank you."
    ),
}


def format_amount(value) -> str:
    """15000 -> '15000', 1500.5 -> '1500.50', -5000.00 -> '-5000'. No thousands separators."""
    amount = to_decimal(value).quantize(Decimal("0.01"))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return f"{amount:.2f}"


def _student_tokens(student) -> Dict[str, str]:
    return {
        "StudentName": f"{student.first_name} {student.last_name}".strip(),
        "Class": student.grade or "",
        "Balance": format_amount(student.fee_balance),
    }


def _guardian_name(guardian) -> Optional[str]:
    if guardian is None:
        return None
    if isinstance(guardian, dict):
        return guardian.get("name")
    return getattr(guardian, "name", None)


def compose(template: str, student, guardian=None, values: Optional[Dict[str, str]] = None) -> str:
    tokens = _student_tokens(student)
    name = _guardian_name(guardian)
    if name:
        tokens["GuardianName"] = name
        tokens["ParentName"] = name
    for key, value in (values or {}).items():
        tokens[key.strip("[]")] = str(value)

    # Single pass: substituted values are never scanned for tokens again
    return TOKEN_PATTERN.sub(lambda m: tokens.get(m.group(1), m.group(0)), template)


def payment_confirmation_message(payment) -> str:
    return (
        f"Dear {payment.parent_name}, your payment of KES {format_amount(payment.amount)} for "
        f"{payment.student_name} ({payment.student_class}) has been received successfully. "
        f"Receipt: {payment.receipt_number}. Thank you!"
    )


def balance_alert_message(payment, balance) -> str:
    return (
        f"Dear {payment.parent_name}, the current fee balance for {payment.student_name} is "
        f"KES {format_amount(balance)}. Please clear the balance soon."
    )


def normalize_phone(raw: Optional[str], country_code: str = "+254") -> Optional[str]:
    if not raw:
        return None
    phone = str(raw).strip().replace(" ", "")
    if not phone:
        return None
    if phone.startswith("+"):
        return phone
    if phone.startswith("0"):
        return f"{country_code}{phone[1:]}"
    digits = "".join(ch for ch in phone if ch.isdigit())
    country_digits = country_code.lstrip("+")
    if digits.startswith(country_digits) and len(digits) == len(country_digits) + 9:
        return f"+{digits}"
    if 9 <= len(digits) <= 10:
        return f"{country_code}{digits[-9:]}"
    return phone
