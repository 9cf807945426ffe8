"""HTTP surface for checkout session creation and order lookup."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException

from paybridge.common.config import settings
from paybridge.common.db import SessionLocal
from paybridge.common.gateway import MidtransGateway
from paybridge.common.http import install_error_handlers, install_http_middleware
from paybridge.common.logging import configure_logging
from paybridge.common.metrics import metrics_response
from paybridge.common.startup import log_startup_config
from paybridge.common.tracing import instrument_app, setup_tracing
from paybridge.services.checkout.schemas import OrderResponse, TransactionCreateRequest, TransactionResponse
from paybridge.services.checkout.service import CheckoutService
from paybridge.services.orders.store import OrderStore

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    ["SERVICE_NAME", "DATABASE_URL", "MIDTRANS_SERVER_KEY", "MIDTRANS_IS_PRODUCTION"],
)
gateway = MidtransGateway.from_settings()
store = OrderStore(SessionLocal)
service = CheckoutService(
    gateway,
    store,
    default_customer_name=settings.default_customer_name,
    default_customer_email=settings.default_customer_email,
    service_name=settings.service_name,
)


def get_checkout_service() -> CheckoutService:
    return service


def get_order_store() -> OrderStore:
    return store


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Close the gateway HTTP client with the app lifecycle."""

    yield
    await gateway.close()


app = FastAPI(title="PayBridge Checkout", lifespan=lifespan)
install_http_middleware(app)
install_error_handlers(app)
instrument_app(app)


@app.post("/transactions", response_model=TransactionResponse)
async def create_transaction(
    req: TransactionCreateRequest,
    x_user_id: str | None = Header(default=None),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """Create a Snap session and a `PENDING` order for the caller."""

    result = await checkout.create_transaction(
        req.amount,
        customer_name=req.customer_name,
        customer_email=req.customer_email,
        user_id=x_user_id,
    )
    return TransactionResponse(token=result["token"], order_id=result["order_id"])


@app.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, orders: OrderStore = Depends(get_order_store)):
    """Fetch current status for one order."""

    order = orders.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    return OrderResponse.model_validate(order)


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
