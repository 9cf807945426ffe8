"""API request/response schemas for checkout endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TransactionCreateRequest(BaseModel):
    """Purchase request sent by the storefront client.

    `amount` is validated by the service so a bad value is reported as
    `INVALID_ARGUMENT` rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    amount: Any = None
    customer_name: str | None = Field(default=None, alias="customerName")
    customer_email: str | None = Field(default=None, alias="customerEmail")


class TransactionResponse(BaseModel):
    """Snap token handed to the client plus the order it pays for."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    order_id: str = Field(serialization_alias="orderId")


class OrderResponse(BaseModel):
    """Read view of one order for status polling."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    status: str
    amount: Decimal
    created_at: datetime | None
    paid_at: datetime | None
