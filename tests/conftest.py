import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("SYSTEM_REGISTRATION_KEY", "test-system-key")

from decimal import Decimal
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolfees.main import app
from schoolfees.auth.models import User
from schoolfees.auth.schemas import Principal
from schoolfees.auth.security import create_access_token, hash_password
from schoolfees.api.v1.students.schemas import StudentCreate
from schoolfees.api.v1.students import service as student_service
from schoolfees.core.exceptions import TransportError
from schoolfees.core.sms import DeliveryReport, RecipientStatus, get_sms_gateway
from schoolfees.db.records import RecordStore
from schoolfees.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_PASSWORD = "StrongPass123"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI session dependency."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
def store(db_session: AsyncSession) -> RecordStore:
    return RecordStore(db_session)


async def _make_user(db: AsyncSession, email: str, role: str = "admin") -> User:
    user = User(
        email=email,
        name="Jane Bursar",
        school_name="Sunrise Academy",
        role=role,
        password_hash=hash_password(TEST_PASSWORD),
        status="ACTIVE",
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _principal(user: User) -> Principal:
    return Principal(id=user.id, email=user.email, name=user.name, school_name=user.school_name, role=user.role)


@pytest.fixture()
async def user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "bursar@sunrise.ac.ke")


@pytest.fixture()
def principal(user: User) -> Principal:
    return _principal(user)


@pytest.fixture()
async def other_principal(db_session: AsyncSession) -> Principal:
    return _principal(await _make_user(db_session, "office@hillside.ac.ke"))


@pytest.fixture()
def make_student(store: RecordStore, principal: Principal):
    counter = {"n": 0}

    async def _make(
        total_fees: str = "50000",
        grade: str = "Grade 4",
        first_name: str = "John",
        last_name: str = "Doe",
        owner: Optional[Principal] = None,
        guardian_phone: str = "0712345678",
    ):
        counter["n"] += 1
        payload = StudentCreate(
            first_name=first_name,
            last_name=last_name,
            grade=grade,
            admission_number=f"ADM{counter['n']:03d}",
            total_fees=Decimal(total_fees),
            guardian_name="Mary Doe",
            guardian_phone=guardian_phone,
            guardian_email="mary@example.com",
            relationship="Mother",
        )
        return await student_service.create_student(store, owner or principal, payload)

    return _make


class FakeGateway:
    """Records what would have been sent. fail=True makes every send a transport error."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: List[Tuple[List[str], str]] = []

    async def send(self, phone_numbers: List[str], message: str) -> DeliveryReport:
        if self.fail:
            raise TransportError("SMS gateway unreachable")
        self.sent.append((list(phone_numbers), message))
        recipients = [RecipientStatus(number=n, status="Success", status_code=101) for n in phone_numbers]
        return DeliveryReport(total=len(recipients), successful=len(recipients), failed=0, recipients=recipients)


@pytest.fixture()
def gateway() -> FakeGateway:
    fake = FakeGateway()
    app.dependency_overrides[get_sms_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_sms_gateway, None)


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def auth_client(db_session: AsyncSession, user: User) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client carrying a bearer token for `user`."""
    token = create_access_token(subject={"sub": str(user.id), "role": user.role})
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac
