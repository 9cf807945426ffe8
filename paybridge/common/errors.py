"""Error taxonomy shared by the checkout and notification services.

Services raise these; the FastAPI layer maps them onto HTTP responses.
"""

from typing import Any


class PayBridgeError(Exception):
    """Base error carrying a caller-facing message and optional details."""

    status = "INTERNAL"
    http_status = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidArgument(PayBridgeError):
    """Bad caller input, raised before any side effect."""

    status = "INVALID_ARGUMENT"
    http_status = 400


class Internal(PayBridgeError):
    """Upstream or store failure surfaced to a session-creation caller."""

    status = "INTERNAL"
    http_status = 500


class UpstreamGatewayError(PayBridgeError):
    """The payment gateway rejected or failed a session or verification call."""

    status = "UPSTREAM_GATEWAY_ERROR"
    http_status = 502


class PersistenceError(PayBridgeError):
    """Order store read/write failure."""

    status = "PERSISTENCE_ERROR"
    http_status = 500


class UnknownOrder(PersistenceError):
    """A notification referenced an order that is not in the store."""

    status = "UNKNOWN_ORDER"
    http_status = 500
