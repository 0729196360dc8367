"""Unit tests for guardian message composition."""

from decimal import Decimal
from types import SimpleNamespace

from schoolfees.core.notifications import (
    FEE_REMINDER_TEMPLATES,
    balance_alert_message,
    compose,
    format_amount,
    normalize_phone,
    payment_confirmation_message,
)


def _student(balance="15000", grade="Grade 4"):
    return SimpleNamespace(first_name="John", last_name="Doe", grade=grade, fee_balance=Decimal(balance))


def test_compose_student_tokens() -> None:
    message = compose("Dear [StudentName], balance KES [Balance]", _student(), None)
    assert message == "Dear John Doe, balance KES 15000"


def test_compose_stored_decimal_balance() -> None:
    assert compose("[Balance]", _student("15000.00"), None) == "15000"
    assert compose("[Balance]", _student("1500.5"), None) == "1500.50"
    assert compose("[Balance]", _student("-5000.00"), None) == "-5000"


def test_compose_guardian_and_caller_values() -> None:
    template = "Dear [GuardianName], [StudentName] ([Class]) reopens on [Date] at [Time]. [Unknown] stays."
    message = compose(
        template,
        _student(),
        {"name": "Mary Doe", "phone": "0712345678"},
        {"Date": "5 January", "[Time]": "8:00 AM"},
    )
    assert message == "Dear Mary Doe, John Doe (Grade 4) reopens on 5 January at 8:00 AM. [Unknown] stays."


def test_compose_repeats_every_occurrence() -> None:
    template = FEE_REMINDER_TEMPLATES["Gentle Reminder"]
    message = compose(template, _student(), None)
    assert "[StudentName]" not in message
    assert message.count("John Doe") == 2
    assert "KES 15000" in message


def test_format_amount() -> None:
    assert format_amount(Decimal("15000")) == "15000"
    assert format_amount(12) == "12"
    assert format_amount("0.1") == "0.10"


def test_payment_messages() -> None:
    payment = SimpleNamespace(
        parent_name="Mary Doe",
        student_name="John Doe",
        student_class="Grade 4",
        amount=Decimal("2000.00"),
        receipt_number="RCP12345678AB",
    )
    confirmation = payment_confirmation_message(payment)
    assert "KES 2000 for John Doe (Grade 4)" in confirmation
    assert "RCP12345678AB" in confirmation
    assert balance_alert_message(payment, Decimal("12500.00")).endswith("is KES 12500. Please clear the balance soon.")


def test_normalize_phone() -> None:
    assert normalize_phone("0712345678") == "+254712345678"
    assert normalize_phone("+254712345678") == "+254712345678"
    assert normalize_phone("712345678") == "+254712345678"
    assert normalize_phone(" 0712 345 678 ") == "+254712345678"
    assert normalize_phone("0712345678", "+256") == "+256712345678"
    assert normalize_phone("254712345678") == "+254712345678"
    assert normalize_phone("254 712 345 678") == "+254712345678"
    assert normalize_phone("256712345678", "+256") == "+256712345678"
    assert normalize_phone("") is None
    assert normalize_phone(None) is None


def test_compose_does_not_expand_tokens_inside_values() -> None:
    student = SimpleNamespace(first_name="[Balance]", last_name="Doe", grade="Grade 1", fee_balance=Decimal("15000"))
    assert compose("Dear [StudentName], class [Class]", student, None) == "Dear [Balance] Doe, class Grade 1"

    message = compose("[GuardianName]: [Date]", _student(), {"name": "[Class]"}, {"Date": "[StudentName]"})
    assert message == "[Class]: [StudentName]"