"""Checkout session creation.

Validates the purchase amount, obtains a Snap session token from the gateway,
then records the order as `PENDING`. Nothing is written when the gateway call
fails.
"""

import math
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from numbers import Real
from typing import Any
from uuid import uuid4

from paybridge.common.errors import Internal, InvalidArgument, PersistenceError, UpstreamGatewayError
from paybridge.common.gateway import PaymentGateway
from paybridge.common.logging import bind_order, logger
from paybridge.common.metrics import checkout_sessions_total
from paybridge.common.status import OrderStatus
from paybridge.common.tracing import tracer
from paybridge.services.orders.models import GUEST_USER_ID
from paybridge.services.orders.store import OrderStore


AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal(10) ** 16


def new_order_id() -> str:
    """`ORDER-<epoch ms>-<12 hex chars>`, well under the gateway's 50-char limit."""

    return f"ORDER-{int(time.time() * 1000)}-{uuid4().hex[:12]}"


def validate_amount(amount: Any) -> Decimal:
    """Return the amount as a Decimal or raise `InvalidArgument`."""

    if isinstance(amount, bool) or not isinstance(amount, (Real, Decimal)):
        raise InvalidArgument("Amount must be greater than zero.")
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidArgument("Amount must be greater than zero.")
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidArgument("Amount must be greater than zero.") from exc
    if not value.is_finite() or value <= 0:
        raise InvalidArgument("Amount must be greater than zero.")
    # Must fit the orders.amount column (Numeric(18, 2)) without rounding.
    if value >= MAX_AMOUNT:
        raise InvalidArgument("Amount is too large.", details=str(value))
    if value != value.quantize(AMOUNT_QUANTUM):
        raise InvalidArgument("Amount must have at most 2 decimal places.", details=str(value))
    # Fractional amounts travel as JSON floats; the charged value must equal the stored one.
    if value != value.to_integral_value() and Decimal(repr(float(value))) != value:
        raise InvalidArgument("Amount cannot be charged exactly.", details=str(value))
    return value


def _gross_amount(amount: Decimal) -> int | float:
    # JSON number for the gateway; whole amounts go out as integers.
    return int(amount) if amount == amount.to_integral_value() else float(amount)


class CheckoutService:
    """Session Initiator: gateway session first, order record second."""

    def __init__(
        self,
        gateway: PaymentGateway,
        store: OrderStore,
        default_customer_name: str,
        default_customer_email: str,
        service_name: str = "checkout",
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.default_customer_name = default_customer_name
        self.default_customer_email = default_customer_email
        self.service_name = service_name

    def build_charge_request(
        self,
        order_id: str,
        amount: Decimal,
        customer_name: str | None,
        customer_email: str | None,
    ) -> dict[str, Any]:
        return {
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": _gross_amount(amount),
            },
            "credit_card": {"secure": True},
            "customer_details": {
                "first_name": (customer_name or "").strip() or self.default_customer_name,
                "email": (customer_email or "").strip() or self.default_customer_email,
            },
        }

    async def create_transaction(
        self,
        amount: Any,
        customer_name: str | None = None,
        customer_email: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, str]:
        """Create a gateway session and a `PENDING` order.

        Returns `{"token", "order_id"}`. Raises `InvalidArgument` for a missing
        or non-positive amount, or one the order row cannot hold exactly, and
        `Internal` when the gateway or the store fails.
        """

        try:
            value = validate_amount(amount)
        except InvalidArgument:
            checkout_sessions_total.labels(service=self.service_name, outcome="invalid_argument").inc()
            logger.warning("checkout rejected amount=%r", amount)
            raise

        order_id = new_order_id()
        bind_order(order_id)
        params = self.build_charge_request(order_id, value, customer_name, customer_email)

        with tracer.start_as_current_span("gateway.create_session"):
            try:
                session = await self.gateway.create_session(params)
            except UpstreamGatewayError as exc:
                checkout_sessions_total.labels(service=self.service_name, outcome="gateway_error").inc()
                logger.error("gateway session creation failed order_id=%s error=%s", order_id, exc.message)
                raise Internal("Failed to create transaction with Midtrans.", details=exc.message) from exc
        token = session["token"]

        try:
            self.store.create(
                order_id,
                {
                    "user_id": user_id or GUEST_USER_ID,
                    "status": OrderStatus.PENDING.value,
                    "amount": value,
                    "session_token": token,
                    "customer_name": params["customer_details"]["first_name"],
                    "customer_email": params["customer_details"]["email"],
                    "created_at": datetime.now(timezone.utc),
                },
            )
        except PersistenceError as exc:
            checkout_sessions_total.labels(service=self.service_name, outcome="store_error").inc()
            # The gateway session stays open with no local order.
            logger.exception("order write failed after gateway session order_id=%s", order_id)
            raise Internal("Failed to create transaction with Midtrans.", details=exc.message) from exc

        checkout_sessions_total.labels(service=self.service_name, outcome="created").inc()
        logger.info("checkout session created order_id=%s amount=%s", order_id, value)
        return {"token": token, "order_id": order_id}
