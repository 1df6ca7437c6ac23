"""Shared fixtures: in-memory database, fake collaborators and an API client."""

import os

# Settings are read once at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from otakusensei.api.deps import get_google_oauth, get_mailer, get_payment_gateway
from otakusensei.auth import create_access_token, hash_password
from otakusensei.database import Base, get_db
from otakusensei.main import app
from otakusensei.models import Comic, SubscriptionPlan, User
from otakusensei.services.google_oauth import GoogleAuthError, GoogleOAuthClient, GoogleProfile
from otakusensei.services.mailer import EmailDeliveryError, Mailer
from otakusensei.services.payments import PaymentIntent, StripeGateway
from otakusensei.timeutil import utcnow

DEFAULT_PASSWORD = "secret12"


class RecordingMailer(Mailer):
    """Keeps sent messages in memory; can be told to fail."""

    def __init__(self):
        super().__init__(host="", port=0, username="", password="", sender="test@otakusensei.app")
        self.sent: list[dict] = []
        self.fail = False

    async def send(self, to: str, subject: str, text: str, html: str) -> None:
        if self.fail:
            raise EmailDeliveryError(f"Failed to send email to {to}")
        self.sent.append({"to": to, "subject": subject, "text": text})

    def subjects_for(self, email: str) -> list[str]:
        return [m["subject"] for m in self.sent if m["to"] == email]


class FakeStripeGateway(StripeGateway):
    """Payment intents held in memory. ``outcome`` is the status verify will see."""

    def __init__(self):
        super().__init__(secret_key="sk_test_fake")
        self.created: list[dict] = []
        self.outcome = "succeeded"

    async def create_payment_intent(self, amount_cents, metadata, description) -> PaymentIntent:
        intent_id = f"pi_test_{len(self.created) + 1}"
        self.created.append({"id": intent_id, "amount_cents": amount_cents, "metadata": metadata})
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret", status="requires_payment_method")

    async def retrieve_payment_intent(self, intent_id: str) -> PaymentIntent:
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret", status=self.outcome)


class FakeGoogleOAuth(GoogleOAuthClient):
    """Accepts ID tokens and codes registered in ``profiles``."""

    def __init__(self):
        super().__init__(client_id="test-client", client_secret="test-secret", redirect_uri="http://test/cb")
        self.profiles: dict[str, GoogleProfile] = {}

    async def verify_id_token(self, id_token: str) -> GoogleProfile:
        if id_token not in self.profiles:
            raise GoogleAuthError("invalid_token")
        return self.profiles[id_token]

    async def exchange_code(self, code: str) -> GoogleProfile:
        if code not in self.profiles:
            raise GoogleAuthError("invalid_grant")
        return self.profiles[code]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def gateway():
    return FakeStripeGateway()


@pytest.fixture
def google():
    return FakeGoogleOAuth()


@pytest.fixture
async def client(session_maker, mailer, gateway, google):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_google_oauth] = lambda: google

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_maker):
    """Factory inserting a user directly into the database."""
    counter = {"n": 0}

    async def _make(
        email: str | None = None,
        role: str = "user",
        password: str | None = DEFAULT_PASSWORD,
        premium_days: int | None = None,
        **fields,
    ) -> User:
        counter["n"] += 1
        first_name = fields.pop("first_name", "Reader")
        user = User(
            email=email or f"reader{counter['n']}@example.com",
            first_name=first_name,
            role=role,
            hashed_password=hash_password(password) if password else None,
            **fields,
        )
        if premium_days is not None:
            now = utcnow()
            user.subscription_plan = "premium"
            user.subscription_start = now - timedelta(days=1)
            user.subscription_end = now + timedelta(days=premium_days)
        async with session_maker() as session:
            session.add(user)
            await session.commit()
        return user

    return _make


@pytest.fixture
def make_comic(session_maker):
    """Factory inserting a comic directly into the database."""
    counter = {"n": 0}

    async def _make(genres: list[str] | None = None, **fields) -> Comic:
        counter["n"] += 1
        fields.setdefault("title", f"Comic {counter['n']}")
        fields.setdefault("description", "A story worth reading twice.")
        fields.setdefault("cover_image", "https://img.example.com/cover.png")
        fields.setdefault("author", "Author Name")
        comic = Comic(**fields)
        comic.set_genres(genres or ["Action"])
        async with session_maker() as session:
            session.add(comic)
            await session.commit()
        return comic

    return _make


@pytest.fixture
def make_plan(session_maker):
    async def _make(plan_type: str = "monthly", price: str = "9.99", duration_days: int = 30) -> SubscriptionPlan:
        plan = SubscriptionPlan(plan_type=plan_type, price=Decimal(price), duration_days=duration_days)
        async with session_maker() as session:
            session.add(plan)
            await session.commit()
        return plan

    return _make


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user_id=user.user_id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
