"""Pytest configuration and fixtures for API tests."""
import hashlib
import hmac
import json
import os
import tempfile
import time
from datetime import date, timedelta
from pathlib import Path

# Set test env BEFORE any imports that use config
_tmp = Path(tempfile.mkdtemp(prefix="academy-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp / 'test.db'}"
os.environ["INITIAL_ADMIN_PASSWORD"] = "testpass123"
os.environ["INITIAL_ADMIN_USERNAME"] = "admin"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

import pytest
from httpx import ASGITransport, AsyncClient

from academy.models.base import Base, async_session_factory, engine
from academy.services.lifecycle import LifecycleManager
from academy.services.payment_gateway import IntentStatus, PaymentIntent, StripeGateway
from academy.services.repository import SqlRegistrationRepository
from web.api.deps import get_gateway
from web.api.main import app

WEBHOOK_SECRET = "whsec_test"


@pytest.fixture(autouse=True)
async def _init_db():
    """Fresh tables for every test (ASGI lifespan doesn't run with httpx)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def auth_headers(client):
    """Login as admin and return Authorization headers for protected endpoints."""
    r = await client.post(
        "/api/auth/login",
        json={"username": "admin", "password": "testpass123"},
    )
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def repository():
    return SqlRegistrationRepository(async_session_factory)


@pytest.fixture
def lifecycle(repository):
    return LifecycleManager(repository)


class FakeGateway(StripeGateway):
    """Real webhook verification, in-memory intents."""

    def __init__(self):
        super().__init__(api_key="sk_test_dummy", webhook_secret=WEBHOOK_SECRET)
        self.intents: dict[str, IntentStatus] = {}

    async def create_intent(self, amount, currency, metadata):
        intent_id = f"pi_fake_{len(self.intents) + 1}"
        self.intents[intent_id] = IntentStatus(
            intent_id=intent_id,
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            metadata={k: str(v) for k, v in metadata.items()},
        )
        return PaymentIntent(intent_id=intent_id, client_secret=f"{intent_id}_secret")

    async def retrieve_intent(self, intent_id):
        return self.intents[intent_id]


@pytest.fixture
def gateway():
    fake = FakeGateway()
    app.dependency_overrides[get_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_gateway, None)


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Stripe-Signature header value for ``payload``."""
    timestamp = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def stripe_event(event_type, intent_id, registration_id, registration_type="tournament", created=None):
    """Serialized Stripe event body."""
    return json.dumps(
        {
            "id": f"evt_{intent_id}_{event_type.rsplit('.', 1)[-1]}",
            "object": "event",
            "type": event_type,
            "created": created or int(time.time()),
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "metadata": {"registrationId": registration_id, "registrationType": registration_type},
                }
            },
        }
    )


def tournament_payload(**overrides):
    """Valid tournament submission body (camelCase, as the frontend sends it)."""
    body = {
        "playerFirstName": "Omar",
        "playerLastName": "Haddad",
        "dateOfBirth": "2012-03-14",
        "gender": "male",
        "playingPositions": ["CM", "ST"],
        "mobileNumber": "0501234567",
        "email": "Omar.Haddad@example.com",
        "academyClub": "Atomics FC",
        "preferredLocations": ["saadiyat"],
        "paymentAmount": 500,
        "divisionLastSeason": "U12 Division 1",
        "strengthWeakness": "Strong passing range, needs work on heading",
        "trialDate": "2025-08-20",
        "trialDateLabel": "Wednesday 20th August",
    }
    body.update(overrides)
    return body


def academy_payload(**overrides):
    """Valid academy submission body."""
    body = {
        "playerFirstName": "Layla",
        "playerLastName": "Mansour",
        "dateOfBirth": "2015-07-02",
        "gender": "female",
        "playingPositions": ["LW"],
        "mobileNumber": "+971 55 765 4321",
        "email": "layla.parent@example.com",
        "academyClub": "None",
        "preferredLocations": ["active-mariah", "saadiyat"],
        "paymentAmount": 1200,
        "selectedTeams": ["U10 Girls"],
        "parentName": "Rania Mansour",
        "parentPhone": "0557654321",
        "startDate": (date.today() + timedelta(days=14)).isoformat(),
    }
    body.update(overrides)
    return body
