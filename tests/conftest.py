import itertools
import os
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

_TMP = Path(tempfile.mkdtemp(prefix="eventhub-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TMP / "uploads")
os.environ["STORAGE_BACKEND"] = "local"

import httpx  # noqa: E402

from eventhub.common.db import Base, get_async_engine, get_sessionmaker, utcnow  # noqa: E402
from eventhub.common.security import create_access_token, get_password_hash  # noqa: E402
from eventhub.auth.models import ParticipantType, User, UserRole  # noqa: E402
from eventhub.events.models import Eligibility, Event, EventStatus, EventType, MerchandiseVariant  # noqa: E402
from eventhub.registrations.models import Registration  # noqa: E402,F401
from eventhub.admin.models import PasswordResetRequest  # noqa: E402,F401
from eventhub.forum.models import ForumMessage  # noqa: E402,F401
from eventhub.feedback.models import Feedback  # noqa: E402,F401

PASSWORD = "secret123"
PASSWORD_HASH = get_password_hash(PASSWORD)
QR_STUB = "data:image/png;base64,VEVTVA=="


@pytest.fixture(autouse=True)
def outbound(monkeypatch):
    """Replace QR rendering, email and webhooks; records what would have been sent."""
    sent = {"tickets": [], "credentials": [], "discord": []}

    def fake_ticket_email(to_email, participant_name, ticket):
        sent["tickets"].append((to_email, ticket))
        return True

    def fake_credentials(to_email, organizer_name, login_email, password):
        sent["credentials"].append((login_email, password))
        return True

    def fake_discord(webhook_url, event):
        sent["discord"].append((webhook_url, event.id))
        return True

    monkeypatch.setattr("eventhub.registrations.tickets.render_qr_data_url", lambda payload, error_correction="H": QR_STUB)
    monkeypatch.setattr("eventhub.registrations.service.send_ticket_email", fake_ticket_email)
    monkeypatch.setattr("eventhub.admin.service.send_organizer_credentials", fake_credentials)
    monkeypatch.setattr("eventhub.events.service.post_event_to_discord", fake_discord)
    return sent


@pytest.fixture
async def session_factory():
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_sessionmaker()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    async def _make(role: UserRole = UserRole.PARTICIPANT, **fields) -> User:
        n = next(counter)
        if role == UserRole.PARTICIPANT:
            defaults = {
                "email": f"student{n}@iiit.ac.in",
                "first_name": "Test",
                "last_name": f"Student{n}",
                "participant_type": ParticipantType.IIIT,
                "areas_of_interest": [],
            }
        elif role == UserRole.ORGANIZER:
            defaults = {
                "email": f"club{n}@felicity.org",
                "organizer_name": f"Club {n}",
                "contact_email": f"club{n}@example.com",
                "is_approved": True,
            }
        else:
            defaults = {"email": f"admin{n}@felicity.org"}
        defaults.update(fields)
        user = User(role=role, hashed_password=PASSWORD_HASH, **defaults)
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_event(db):
    async def _make(organizer: User, event_type: EventType = EventType.NORMAL, variants=None, **fields) -> Event:
        now = utcnow()
        defaults = {
            "event_name": "Hackathon",
            "event_description": "Overnight build sprint",
            "eligibility": Eligibility.ALL,
            "event_tags": ["coding"],
            "venue": "Main Hall",
            "registration_deadline": now + timedelta(days=5),
            "event_start_date": now + timedelta(days=7),
            "event_end_date": now + timedelta(days=8),
            "registration_limit": 0,
            "registration_fee": 0,
            "status": EventStatus.PUBLISHED,
            "custom_form": [],
        }
        if event_type == EventType.MERCHANDISE:
            defaults.update(event_name="Fest T-shirt", item_name="T-shirt", registration_fee=300)
            variants = variants if variants is not None else [("M", "Black", 5)]
        defaults.update(fields)
        event = Event(
            organizer_id=organizer.id,
            event_type=event_type,
            variants=[
                MerchandiseVariant(position=i, size=size, color=color, stock_quantity=stock, sold=0)
                for i, (size, color, stock) in enumerate(variants or [])
            ],
            **defaults,
        )
        db.add(event)
        await db.commit()
        await db.refresh(event)
        return event

    return _make


def auth_headers(user: User) -> dict:
    token = create_access_token(str(user.id), extra={"role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory):
    import main

    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth():
    return auth_headers
