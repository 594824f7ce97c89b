import hashlib
import hmac
import json
import time
import uuid
from types import SimpleNamespace
from typing import AsyncGenerator, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from artforge.core.config import Settings
from artforge.core.database import build_engine, build_session_factory, create_schema
from artforge.core.errors import ProviderErrorKind
from artforge.models.payment_session import PaymentSession
from artforge.services import ledger_service
from artforge.services.auth_service import create_token
from artforge.services.checkout_service import seed_default_packages
from artforge.services.image_provider import (
    GenerationFailure,
    GenerationResult,
    GenerationSuccess,
    ProviderRequest,
)
from artforge.services.ledger_service import TransactionKind

JWT_SECRET = "test-secret-key-min-32-characters-long"
WEBHOOK_SECRET = "whsec_test_secret"


class FakeProvider:
    """Returns queued results in order; the last one repeats."""

    def __init__(self, *results: GenerationResult):
        self.results: List[GenerationResult] = list(results) or [
            GenerationSuccess(payload_b64="aW1hZ2U=", media_type="image/png")
        ]
        self.calls: List[ProviderRequest] = []

    async def generate(self, request: ProviderRequest) -> GenerationResult:
        self.calls.append(request)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeCheckoutSessions:
    def __init__(self):
        self.created = []
        self.error: Optional[Exception] = None

    def create(self, params=None):
        if self.error is not None:
            raise self.error
        self.created.append(params)
        session_id = f"cs_test_{uuid.uuid4().hex[:16]}"
        return SimpleNamespace(id=session_id, url=f"https://checkout.stripe.test/pay/{session_id}")


def fake_stripe_client():
    return SimpleNamespace(checkout=SimpleNamespace(sessions=FakeCheckoutSessions()))


def rate_limited() -> GenerationFailure:
    return GenerationFailure(ProviderErrorKind.RATE_LIMITED, "Rate limit exceeded. Please wait a moment and try again.")


def policy_violation() -> GenerationFailure:
    return GenerationFailure(ProviderErrorKind.POLICY_VIOLATION, "Content policy violation.")


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    ts = int(timestamp if timestamp is not None else time.time())
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={signature}"


def stripe_event(session_id: str, event_type: str = "checkout.session.completed") -> bytes:
    return json.dumps({
        "id": f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": session_id, "object": "checkout.session", "payment_status": "paid"}},
    }).encode("utf-8")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        jwt_secret=JWT_SECRET,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        frontend_url="http://frontend.test",
        log_dir=str(tmp_path / "logs"),
        generation_retry_delay_seconds=0.0,
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.database_url)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        await seed_default_packages(session)
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file, for concurrent writers."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}")
    await create_schema(engine)
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        await seed_default_packages(session)
    yield session_factory
    await engine.dispose()


@pytest.fixture
def make_account(db):
    async def _make(credits: int = 0, account_id: Optional[str] = None, email: str = "artist@example.com"):
        account_id = account_id or str(uuid.uuid4())
        await ledger_service.ensure_account(db, account_id, email)
        if credits:
            await ledger_service.apply_transaction(db, account_id, credits, TransactionKind.PURCHASE, "Starting balance")
        return await ledger_service.get_account(db, account_id)
    return _make


@pytest.fixture
def make_payment_session(db):
    async def _make(account_id: str, credits: int = 50, status: str = "pending", **overrides):
        session = PaymentSession(
            id=str(uuid.uuid4()),
            account_id=account_id,
            external_session_id=overrides.pop("external_session_id", f"cs_test_{uuid.uuid4().hex[:16]}"),
            package_id=overrides.pop("package_id", "starter"),
            credits=credits,
            amount_cents=overrides.pop("amount_cents", 999),
            status=status,
            **overrides,
        )
        db.add(session)
        await db.commit()
        return session
    return _make


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def stripe_client():
    return fake_stripe_client()


@pytest.fixture
async def app(settings, provider, stripe_client):
    from artforge.server import create_app

    app = create_app(settings, generation_provider=provider, stripe_client=stripe_client)
    await create_schema(app.state.engine)
    async with app.state.session_factory() as session:
        await seed_default_packages(session)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(account_id: str = "acct-1", email: str = "artist@example.com"):
        return {"Authorization": f"Bearer {create_token(account_id, email, JWT_SECRET)}"}
    return _headers
