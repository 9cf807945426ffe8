"""Gateway webhook endpoint.

Answers 200 only after the order has been reconciled; every failure answers 500
so the gateway redelivers the notification.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from paybridge.common.config import settings
from paybridge.common.db import SessionLocal
from paybridge.common.errors import PayBridgeError
from paybridge.common.gateway import MidtransGateway
from paybridge.common.http import install_http_middleware
from paybridge.common.logging import configure_logging, logger
from paybridge.common.metrics import metrics_response, notification_failures_total
from paybridge.common.startup import log_startup_config
from paybridge.common.tracing import instrument_app, setup_tracing
from paybridge.services.notification.service import NotificationService
from paybridge.services.orders.store import OrderStore

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    ["SERVICE_NAME", "DATABASE_URL", "MIDTRANS_SERVER_KEY", "MIDTRANS_IS_PRODUCTION"],
)
gateway = MidtransGateway.from_settings()
service = NotificationService(gateway, OrderStore(SessionLocal), service_name=settings.service_name)


def get_notification_service() -> NotificationService:
    return service


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Close the gateway HTTP client with the app lifecycle."""

    yield
    await gateway.close()


app = FastAPI(title="PayBridge Notification Service", lifespan=lifespan)
install_http_middleware(app)
instrument_app(app)


@app.post("/notifications/midtrans", response_class=PlainTextResponse)
async def midtrans_notification(
    request: Request,
    notifications: NotificationService = Depends(get_notification_service),
):
    """Reconcile one Midtrans payment notification."""

    raw_body = await request.body()
    try:
        await notifications.handle_notification(raw_body)
    except PayBridgeError:
        # Already logged and counted by the service.
        return PlainTextResponse("Error", status_code=500)
    except Exception:
        notification_failures_total.labels(service=settings.service_name, error="UNEXPECTED").inc()
        logger.exception("unexpected error while handling notification")
        return PlainTextResponse("Error", status_code=500)
    return PlainTextResponse("Notification Handled", status_code=200)


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()
