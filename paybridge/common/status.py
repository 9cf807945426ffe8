"""Order status derivation from gateway transaction and fraud statuses."""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CHALLENGE = "CHALLENGE"


FAILED_TRANSACTION_STATUSES: frozenset[str] = frozenset({"deny", "cancel", "expire", "failure"})


def derive_order_status(transaction_status: str | None, fraud_status: str | None) -> OrderStatus:
    """Map a gateway `(transaction_status, fraud_status)` pair to an order status.

    Rules are checked in order and the first match wins. Anything unmatched,
    including a card capture that fraud screening did not accept, falls through
    to `CHALLENGE`.
    """

    if transaction_status == "capture" and fraud_status == "accept":
        return OrderStatus.SUCCESS
    if transaction_status == "settlement":
        return OrderStatus.SUCCESS
    if transaction_status == "pending":
        return OrderStatus.PENDING
    if transaction_status in FAILED_TRANSACTION_STATUSES:
        return OrderStatus.FAILED
    return OrderStatus.CHALLENGE
