"""Payment gateway client contract and the Midtrans implementation.

Services only depend on `PaymentGateway`; tests substitute fakes. The Midtrans
client talks to the Snap API (session tokens) and the Core API (authoritative
transaction status) over one lazily created `httpx.AsyncClient`.
"""

import hashlib
import hmac
import json
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from paybridge.common.config import settings
from paybridge.common.errors import UpstreamGatewayError
from paybridge.common.logging import logger
from paybridge.common.metrics import gateway_latency_seconds


SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com"
SANDBOX_CORE_URL = "https://api.sandbox.midtrans.com"
PRODUCTION_SNAP_URL = "https://app.midtrans.com"
PRODUCTION_CORE_URL = "https://api.midtrans.com"

SIGNED_FIELDS = ("order_id", "status_code", "gross_amount")


class GatewayStatus(BaseModel):
    """Normalized transaction status; unknown gateway fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    order_id: str = Field(min_length=1)
    transaction_status: str
    fraud_status: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    async def create_session(self, params: dict[str, Any]) -> dict[str, Any]:
        """Create a payment session; the result carries at least `token`."""

    @abstractmethod
    async def verify_notification(self, raw_body: bytes) -> GatewayStatus:
        """Authenticate a webhook body and return the normalized status."""

    async def close(self) -> None:
        return None


def notification_signature(order_id: str, status_code: str, gross_amount: str, server_key: str) -> str:
    """Midtrans `signature_key`: SHA-512 hex of the signed fields plus the server key."""

    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


class MidtransGateway(PaymentGateway):
    """Snap + Core API client authenticated with the merchant server key."""

    def __init__(
        self,
        server_key: str,
        is_production: bool = False,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.server_key = server_key
        self.is_production = is_production
        self.timeout_seconds = timeout_seconds
        self.snap_url = PRODUCTION_SNAP_URL if is_production else SANDBOX_SNAP_URL
        self.core_url = PRODUCTION_CORE_URL if is_production else SANDBOX_CORE_URL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls) -> "MidtransGateway":
        return cls(
            server_key=settings.midtrans_server_key,
            is_production=settings.midtrans_is_production,
            timeout_seconds=settings.midtrans_timeout_seconds,
        )

    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=(self.server_key, ""),
                timeout=self.timeout_seconds,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Send one request and return the decoded JSON object body."""

        with gateway_latency_seconds.labels(service=settings.service_name, operation=operation).time():
            try:
                resp = await self.client().request(method, url, **kwargs)
            except httpx.HTTPError as exc:
                raise UpstreamGatewayError(f"{operation} request failed", details=str(exc)) from exc
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamGatewayError(
                f"{operation} returned a non-JSON body", details=f"http_status={resp.status_code}"
            ) from exc
        if resp.status_code >= 400:
            detail = body.get("error_messages") or body.get("status_message") if isinstance(body, dict) else None
            raise UpstreamGatewayError(
                f"{operation} rejected with HTTP {resp.status_code}",
                details=detail or resp.text,
            )
        if not isinstance(body, dict):
            raise UpstreamGatewayError(f"{operation} returned an unexpected body", details=resp.text)
        return body

    async def create_session(self, params: dict[str, Any]) -> dict[str, Any]:
        body = await self._request(
            "create_session",
            "POST",
            f"{self.snap_url}/snap/v1/transactions",
            json=params,
        )
        if not body.get("token"):
            raise UpstreamGatewayError("create_session response has no token", details=body)
        return body

    def _verify_signature(self, payload: dict[str, Any]) -> None:
        signed = [payload.get(name) for name in SIGNED_FIELDS]
        signature = payload.get("signature_key")
        if not all(isinstance(value, str) and value for value in signed) or not isinstance(signature, str):
            raise UpstreamGatewayError("notification is missing signed fields")
        expected = notification_signature(*signed, self.server_key)
        if not hmac.compare_digest(expected, signature):
            raise UpstreamGatewayError("invalid notification signature", details={"order_id": payload["order_id"]})

    async def fetch_status(self, transaction_ref: str) -> dict[str, Any]:
        """Fetch the current transaction status by order id or transaction id."""

        body = await self._request(
            "transaction_status",
            "GET",
            f"{self.core_url}/v2/{quote(transaction_ref, safe='')}/status",
        )
        # Core API reports most failures as HTTP 200 with an error status_code;
        # 407 is an expired transaction and still carries a status.
        try:
            status_code = int(body.get("status_code", "200"))
        except (TypeError, ValueError) as exc:
            raise UpstreamGatewayError("transaction status has an invalid status_code", details=body) from exc
        if status_code >= 400 and status_code != 407:
            raise UpstreamGatewayError(
                f"transaction status lookup failed with status_code {status_code}",
                details=body.get("status_message"),
            )
        return body

    async def verify_notification(self, raw_body: bytes) -> GatewayStatus:
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise UpstreamGatewayError("notification body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise UpstreamGatewayError("notification body is not a JSON object")

        self._verify_signature(payload)
        order_id = payload["order_id"]
        fetched = await self.fetch_status(payload.get("transaction_id") or order_id)
        try:
            status = GatewayStatus.model_validate(fetched)
        except ValidationError as exc:
            raise UpstreamGatewayError("transaction status is malformed", details=str(exc)) from exc
        if status.order_id != order_id:
            raise UpstreamGatewayError(
                "transaction status belongs to a different order",
                details={"notified": order_id, "fetched": status.order_id},
            )
        logger.info(
            "notification verified order_id=%s transaction_status=%s fraud_status=%s",
            status.order_id,
            status.transaction_status,
            status.fraud_status,
        )
        return status
