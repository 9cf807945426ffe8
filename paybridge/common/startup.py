"""Startup-time helpers for safe config logging."""

import os

from paybridge.common.config import settings
from paybridge.common.logging import logger


_SECRET_MARKERS = ("KEY", "SECRET", "PASSWORD", "TOKEN")


def _safe_env(name: str) -> str:
    """Return env value with simple redaction for secret-like variable names."""

    value = os.getenv(name)
    if value is None:
        return "<unset>"
    if any(marker in name for marker in _SECRET_MARKERS):
        return "<redacted>"
    if name == "DATABASE_URL" and "@" in value:
        # Keep scheme and host, drop credentials.
        scheme, _, rest = value.partition("://")
        return f"{scheme}://<redacted>@{rest.rsplit('@', 1)[1]}"
    return value


def log_startup_config(service_name: str, keys: list[str]) -> None:
    """Log selected startup config keys and the gateway environment."""

    config = {
        "service": service_name,
        "gateway_environment": "production" if settings.midtrans_is_production else "sandbox",
    }
    for key in keys:
        config[key] = _safe_env(key)
    logger.info("startup_config=%s", config)
