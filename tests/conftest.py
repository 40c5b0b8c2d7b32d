import os

os.environ.setdefault("APP_ENV", "test")
os.environ["RESEND_API_KEY"] = ""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

from dentconnect.core.security import hash_password, utcnow
from dentconnect.db.sql import get_session, init_db, make_engine, make_sessionmaker
from dentconnect.main import app
from dentconnect.modules.appointments.models import Appointment
from dentconnect.modules.notifications.dispatcher import NotificationDispatcher, get_dispatcher
from dentconnect.modules.practices.models import Dentist, Practice, Treatment
from dentconnect.modules.users.models import User

PASSWORD = "s3cretpass"


class FakeTransport:
    """Records messages instead of calling a mail provider."""

    def __init__(self):
        self.configured = True
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.sent = []

    def send(self, message):
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return {"id": f"msg-{len(self.sent)}"}


@dataclass
class Catalog:
    practice_id: UUID
    practice_email: str
    other_practice_id: UUID
    dentist_id: UUID
    other_dentist_id: UUID
    treatment_id: UUID
    emergency_treatment_id: UUID
    patient_id: UUID
    other_patient_id: UUID
    dentist_user_id: UUID
    other_dentist_user_id: UUID


@pytest.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'dentconnect-test.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def dispatcher(transport):
    return NotificationDispatcher(transport, sender="DentConnect <noreply@dentconnect.co.uk>", timeout=1.0)


@pytest.fixture
async def client(sessionmaker, dispatcher):
    async def _get_session():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def catalog(sessionmaker) -> Catalog:
    pw_hash = hash_password(PASSWORD)
    async with sessionmaker() as s:
        practice = Practice(
            name="Riverside Dental Care",
            address="12 Riverside Walk, London",
            postcode="SE1 9PX",
            latitude=51.5055,
            longitude=-0.0909,
            phone="020 7946 0001",
            email="bookings@riversidedental.co.uk",
            practice_tag="RIVER2024",
            wheelchair_access=True,
        )
        other = Practice(
            name="Northern Smiles",
            address="3 Deansgate, Manchester",
            postcode="M3 2BW",
            latitude=53.4808,
            longitude=-2.2426,
            email="hello@northernsmiles.co.uk",
            practice_tag="NORTH01",
        )
        s.add_all([practice, other])
        await s.flush()

        dentist = Dentist(
            practice_id=practice.id,
            name="Sarah Patel",
            title="Dr.",
            specialization="General Dentistry",
            languages=["English", "Gujarati"],
            available_days=["Monday", "Wednesday"],
        )
        other_dentist = Dentist(practice_id=other.id, name="Tom Reed", title="Dr.")
        routine = Treatment(name="Check-up & Clean", category="routine", duration=30, price=55.0)
        emergency = Treatment(name="Emergency Examination", category="emergency", duration=30, price=45.0)
        s.add_all([dentist, other_dentist, routine, emergency])

        patient = User(
            email="pat.jones@example.com",
            password_hash=pw_hash,
            first_name="Pat",
            last_name="Jones",
            phone="07700 900123",
            user_type="patient",
        )
        other_patient = User(
            email="sam.lee@example.com",
            password_hash=pw_hash,
            first_name="Sam",
            last_name="Lee",
            user_type="patient",
        )
        dentist_user = User(
            email="dr.patel@riversidedental.co.uk",
            password_hash=pw_hash,
            first_name="Sarah",
            last_name="Patel",
            user_type="dentist",
            practice_id=practice.id,
        )
        other_dentist_user = User(
            email="dr.reed@northernsmiles.co.uk",
            password_hash=pw_hash,
            first_name="Tom",
            last_name="Reed",
            user_type="dentist",
            practice_id=other.id,
        )
        s.add_all([patient, other_patient, dentist_user, other_dentist_user])
        await s.commit()

        return Catalog(
            practice_id=practice.id,
            practice_email=practice.email,
            other_practice_id=other.id,
            dentist_id=dentist.id,
            other_dentist_id=other_dentist.id,
            treatment_id=routine.id,
            emergency_treatment_id=emergency.id,
            patient_id=patient.id,
            other_patient_id=other_patient.id,
            dentist_user_id=dentist_user.id,
            other_dentist_user_id=other_dentist_user.id,
        )


@pytest.fixture
def make_slot(sessionmaker, catalog):
    """Insert an appointment `days` from now and return its id."""

    async def _make(
        days: float = 1,
        *,
        practice_id: Optional[UUID] = None,
        dentist_id: Optional[UUID] = None,
        treatment_id: Optional[UUID] = None,
        status: str = "available",
        user_id: Optional[UUID] = None,
    ) -> UUID:
        async with sessionmaker() as s:
            appt = Appointment(
                practice_id=practice_id or catalog.practice_id,
                dentist_id=dentist_id or catalog.dentist_id,
                treatment_id=treatment_id or catalog.treatment_id,
                appointment_date=utcnow() + timedelta(days=days),
                status=status,
                user_id=user_id,
            )
            s.add(appt)
            await s.commit()
            return appt.id

    return _make


@pytest.fixture
def load_user(sessionmaker):
    """
    Fetch a user in its own session and end the read transaction, so the
    instance can be handed to a service running on another session.
    """

    async def _load(user_id: UUID) -> User:
        async with sessionmaker() as s:
            user = await s.get(User, user_id)
            await s.commit()
            return user

    return _load


async def login(client: AsyncClient, email: str, password: str = PASSWORD, user_type: Optional[str] = None) -> dict:
    body = {"email": email, "password": password}
    if user_type:
        body["user_type"] = user_type
    res = await client.post("/api/auth/login", json=body)
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}
