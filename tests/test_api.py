"""End-to-end HTTP flows: students, payments with guardian SMS, dashboard, SMS sends."""

from decimal import Decimal

from httpx import ASGITransport, AsyncClient

from schoolfees.auth.models import User
from schoolfees.auth.security import create_access_token, hash_password
from schoolfees.core.enums import Collection
from schoolfees.core.exceptions import TransportError
from schoolfees.db.records import RecordStore
from schoolfees.main import app


STUDENT_PAYLOAD = {
    "first_name": "Brian",
    "last_name": "Otieno",
    "grade": "Grade 6",
    "admission_number": "ADM-2041",
    "total_fees": "45000",
    "guardian_name": "Alice Otieno",
    "guardian_phone": "0712345678",
    "relationship": "Mother",
}


async def _create_student(auth_client: AsyncClient, **overrides) -> dict:
    response = await auth_client.post("/api/v1/students", json={**STUDENT_PAYLOAD, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


async def _pay(auth_client: AsyncClient, student_id: str, amount: str, **extra):
    return await auth_client.post(
        "/api/v1/payments",
        json={"student_id": student_id, "amount": amount, "mpesa_code": "SGH7KL90PQ", **extra},
    )


async def test_create_and_fetch_student(auth_client: AsyncClient) -> None:
    created = await _create_student(auth_client)
    assert Decimal(created["fee_balance"]) == Decimal("45000")
    assert created["guardians"][0]["name"] == "Alice Otieno"

    fetched = await auth_client.get(f"/api/v1/students/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["admission_number"] == "ADM-2041"

    listing = await auth_client.get("/api/v1/students")
    assert [s["id"] for s in listing.json()] == [created["id"]]


async def test_duplicate_admission_number_is_conflict(auth_client: AsyncClient) -> None:
    await _create_student(auth_client)
    response = await auth_client.post("/api/v1/students", json=STUDENT_PAYLOAD)
    assert response.status_code == 409


async def test_record_payment_sends_receipt_sms(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client)

    response = await _pay(auth_client, student["id"], "15000")

    assert response.status_code == 201
    body = response.json()
    assert body["payment"]["receipt_number"].startswith("RCP")
    assert body["payment"]["payment_method"] == "KCB M-Pesa"
    assert Decimal(body["student"]["paid_fees"]) == Decimal("15000")
    assert Decimal(body["student"]["fee_balance"]) == Decimal("30000")
    assert body["notification"]["sent"] is True

    # Receipt plus a balance alert, since 30000 is above the alert threshold
    assert len(gateway.sent) == 2
    numbers, receipt = gateway.sent[0]
    assert numbers == ["+254712345678"]
    assert "15000" in receipt
    assert body["payment"]["receipt_number"] in receipt
    assert body["notification"]["balance_alert_sent"] is True


async def test_small_balance_gets_no_alert(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client, total_fees="12000")
    response = await _pay(auth_client, student["id"], "5000")
    assert response.status_code == 201
    assert len(gateway.sent) == 1
    assert response.json()["notification"]["balance_alert_sent"] is False


async def test_sms_outage_does_not_fail_payment(auth_client: AsyncClient, gateway) -> None:
    gateway.fail = True
    student = await _create_student(auth_client)

    response = await _pay(auth_client, student["id"], "1000")

    assert response.status_code == 201
    notification = response.json()["notification"]
    assert notification["attempted"] is True
    assert notification["sent"] is False
    assert notification["error"] == "SMS gateway unreachable"

    payments = await auth_client.get(f"/api/v1/students/{student['id']}/payments")
    assert len(payments.json()) == 1


async def test_notify_guardian_false_skips_sms(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client)
    response = await _pay(auth_client, student["id"], "1000", notify_guardian=False)
    assert response.status_code == 201
    assert response.json()["notification"]["attempted"] is False
    assert gateway.sent == []


async def test_invalid_payment_is_rejected(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client)

    zero = await _pay(auth_client, student["id"], "0")
    assert zero.status_code == 400

    sub_cent = await _pay(auth_client, student["id"], "0.001")
    assert sub_cent.status_code == 400

    too_large = await _pay(auth_client, student["id"], "1000000000000")
    assert too_large.status_code == 400

    bad_time = await _pay(auth_client, student["id"], "100", time="9am")
    assert bad_time.status_code == 422

    assert (await auth_client.get("/api/v1/payments")).json() == []


async def test_overpayment_gives_negative_balance(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client, total_fees="10000")
    response = await _pay(auth_client, student["id"], "12500")
    assert Decimal(response.json()["student"]["fee_balance"]) == Decimal("-2500")

    stats = (await auth_client.get("/api/v1/dashboard")).json()
    assert stats["overpaid"] == 1


async def test_record_payment_partial_failure_detail(auth_client: AsyncClient, gateway, monkeypatch) -> None:
    student = await _create_student(auth_client)
    real_update = RecordStore.update_record

    async def failing_update(self, collection, record_id, partial):
        if collection == Collection.STUDENTS:
            raise TransportError("Storage unavailable")
        return await real_update(self, collection, record_id, partial)

    monkeypatch.setattr(RecordStore, "update_record", failing_update)
    response = await _pay(auth_client, student["id"], "2000")
    monkeypatch.setattr(RecordStore, "update_record", real_update)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["operation"] == "record_payment"
    assert detail["failed_ids"] == [student["id"]]
    assert detail["primary_id"]
    assert gateway.sent == []

    repaired = await auth_client.post(f"/api/v1/students/{student['id']}/reconcile")
    assert repaired.status_code == 200
    assert Decimal(repaired.json()["student"]["paid_fees"]) == Decimal("2000")


async def test_transfer_over_http(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client)
    await _pay(auth_client, student["id"], "1000")

    response = await auth_client.post(
        f"/api/v1/students/{student['id']}/transfer", json={"new_grade": "Grade 7"}
    )
    assert response.status_code == 200
    assert response.json()["payments_updated"] == 1

    payments = (await auth_client.get("/api/v1/payments")).json()
    assert payments[0]["student_class"] == "Grade 7"


async def test_delete_requires_admin_or_director(auth_client: AsyncClient, db_session) -> None:
    student = await _create_student(auth_client)

    clerk = User(
        email="clerk@sunrise.ac.ke",
        name="Peter Clerk",
        school_name="Sunrise Academy",
        role="accountant",
        password_hash=hash_password("ClerkPass123"),
        status="ACTIVE",
    )
    db_session.add(clerk)
    await db_session.commit()
    token = create_access_token(subject={"sub": str(clerk.id), "role": clerk.role})

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as clerk_client:
        forbidden = await clerk_client.delete(f"/api/v1/students/{student['id']}")
    assert forbidden.status_code == 403

    deleted = await auth_client.delete(f"/api/v1/students/{student['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["payments_deleted"] == 0
    assert (await auth_client.get(f"/api/v1/students/{student['id']}")).status_code == 404


async def test_dashboard_totals(auth_client: AsyncClient, gateway) -> None:
    paid_up = await _create_student(auth_client, admission_number="ADM-1", total_fees="20000", grade="Grade 2")
    owing = await _create_student(auth_client, admission_number="ADM-2", total_fees="30000", grade="Form 3")
    await _create_student(auth_client, admission_number="ADM-3", total_fees="10000", grade="PP1")
    await _pay(auth_client, paid_up["id"], "20000")
    await _pay(auth_client, owing["id"], "10000")

    response = await auth_client.get("/api/v1/dashboard")
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_students"] == 3
    assert Decimal(stats["total_expected"]) == Decimal("60000")
    assert Decimal(stats["total_collected"]) == Decimal("30000")
    assert Decimal(stats["total_outstanding"]) == Decimal("30000")
    assert stats["collection_rate"] == 50.0
    assert stats["students_with_balance"] == 2
    assert (stats["fully_paid"], stats["partially_paid"], stats["not_paid"]) == (1, 1, 1)
    assert stats["recent_payments_count"] == 2
    assert stats["top_debtors"][0]["student_id"] == owing["id"]


async def test_dashboard_is_scoped_to_owner(auth_client: AsyncClient, other_principal) -> None:
    await _create_student(auth_client)
    token = create_access_token(subject={"sub": str(other_principal.id), "role": other_principal.role})
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as other_client:
        stats = (await other_client.get("/api/v1/dashboard")).json()
    assert stats["total_students"] == 0
    assert stats["collection_rate"] == 0


async def test_bulk_sms_normalizes_and_dedupes(auth_client: AsyncClient, gateway) -> None:
    response = await auth_client.post(
        "/api/v1/sms",
        json={"numbers": ["0712345678", "+254712345678", "722 000 111"], "message": "School closes Friday"},
    )
    assert response.status_code == 200
    assert response.json()["successful"] == 2
    assert gateway.sent == [(["+254712345678", "+254722000111"], "School closes Friday")]


async def test_guardian_sms_defaults_to_debtors(auth_client: AsyncClient, gateway) -> None:
    debtor = await _create_student(auth_client, admission_number="ADM-1", first_name="Brian")
    cleared = await _create_student(auth_client, admission_number="ADM-2", total_fees="5000", first_name="Faith")
    await _pay(auth_client, cleared["id"], "5000", notify_guardian=False)

    response = await auth_client.post(
        "/api/v1/sms/guardians",
        json={"message": "Dear [GuardianName], [StudentName] of [Class] owes KES [Balance] by [Date].", "values": {"Date": "5 Jan"}},
    )

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert len(gateway.sent) == 1
    numbers, message = gateway.sent[0]
    assert numbers == ["+254712345678"]
    assert message == "Dear Alice Otieno, Brian Otieno of Grade 6 owes KES 45000 by 5 Jan."
    assert debtor["id"] not in response.json()["skipped"]


async def test_guardian_sms_counts_outage_as_failure(auth_client: AsyncClient, gateway) -> None:
    student = await _create_student(auth_client)
    gateway.fail = True
    response = await auth_client.post(
        "/api/v1/sms/guardians",
        json={"student_ids": [student["id"]], "message": "Reminder for [StudentName]"},
    )
    assert response.status_code == 200
    assert response.json()["failed"] == 1
    assert response.json()["successful"] == 0


async def test_guardian_sms_without_recipients(auth_client: AsyncClient, gateway) -> None:
    response = await auth_client.post("/api/v1/sms/guardians", json={"message": "Hello"})
    assert response.status_code == 400


async def test_templates_catalogue(auth_client: AsyncClient) -> None:
    response = await auth_client.get("/api/v1/sms/templates")
    assert response.status_code == 200
    body = response.json()
    assert "Gentle Reminder" in body["fee"]
    assert "School Reopening" in body["general"]
