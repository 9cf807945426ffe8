"""Shared fixtures: in-memory order store and a scriptable fake gateway."""

import json
import os
from datetime import datetime, timezone
from decimal import Decimal

# Settings are read at import time by paybridge.common.config.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MIDTRANS_SERVER_KEY"] = "SB-Mid-server-test-key"
os.environ["SERVICE_NAME"] = "paybridge-tests"
os.environ["OTEL_SDK_DISABLED"] = "true"

import pytest

from paybridge.common.db import create_schema, make_engine, make_session_factory
from paybridge.common.errors import UpstreamGatewayError
from paybridge.common.gateway import GatewayStatus, PaymentGateway
from paybridge.services.orders.store import OrderStore


class FakeGateway(PaymentGateway):
    """Records calls; verification trusts the body unless told to fail."""

    def __init__(self) -> None:
        self.token = "snap-token-123"
        self.create_error: Exception | None = None
        self.verify_error: Exception | None = None
        self.sessions: list[dict] = []
        self.verified: list[bytes] = []

    async def create_session(self, params):
        self.sessions.append(params)
        if self.create_error is not None:
            raise self.create_error
        return {"token": self.token, "redirect_url": f"https://app.sandbox.midtrans.com/snap/v4/{self.token}"}

    async def verify_notification(self, raw_body):
        self.verified.append(raw_body)
        if self.verify_error is not None:
            raise self.verify_error
        try:
            return GatewayStatus.model_validate(json.loads(raw_body))
        except ValueError as exc:
            raise UpstreamGatewayError("malformed notification") from exc


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    create_schema(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return OrderStore(session_factory)


@pytest.fixture
def gateway():
    return FakeGateway()


def _notification_body(order_id: str, transaction_status: str, fraud_status: str | None = None, **extra) -> bytes:
    payload = {"order_id": order_id, "transaction_status": transaction_status, **extra}
    if fraud_status is not None:
        payload["fraud_status"] = fraud_status
    return json.dumps(payload).encode("utf-8")


@pytest.fixture
def notification_body():
    """Build a webhook body the fake gateway accepts as already verified."""

    return _notification_body


@pytest.fixture
def pending_order(store):
    """One stored `PENDING` order, as checkout would have written it."""

    return store.create(
        "ORDER-1700000000000-abc123def456",
        {
            "user_id": "guest",
            "status": "PENDING",
            "amount": Decimal("150000"),
            "session_token": "snap-token-123",
            "created_at": datetime.now(timezone.utc),
        },
    )
