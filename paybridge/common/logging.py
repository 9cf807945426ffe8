"""Structured JSON logging with request/order context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from paybridge.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
order_id_ctx: ContextVar[str] = ContextVar("order_id", default="")


def bind_order(order_id: str) -> None:
    """Tag subsequent log lines of the current request with `order_id`."""

    order_id_ctx.set(order_id)


class ContextFilter(logging.Filter):
    """Inject service, gateway environment and correlation identifiers.

    An `order_id` passed explicitly through `extra=` wins over the bound one;
    records outside any order carry `order_id=None` rather than an empty string.
    """

    def __init__(self) -> None:
        super().__init__()
        self.gateway_environment = "production" if settings.midtrans_is_production else "sandbox"

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.gateway_environment = self.gateway_environment
        record.trace_id = trace_id_ctx.get() or None
        if not getattr(record, "order_id", None):
            record.order_id = order_id_ctx.get() or None
        return True


def configure_logging() -> None:
    """Configure root logger once per service process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(gateway_environment)s %(trace_id)s %(order_id)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("paybridge")
