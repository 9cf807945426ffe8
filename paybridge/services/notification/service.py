"""Webhook reconciliation of gateway payment statuses into stored orders.

Each delivery is verified through the gateway client, mapped to an order status
and written as a full overwrite of the order's status fields, so redelivery of
the same payload converges on the same stored state. Ordering between
deliveries is not enforced: the last committed write wins.
"""

from datetime import datetime, timezone

from paybridge.common.errors import PayBridgeError
from paybridge.common.gateway import GatewayStatus, PaymentGateway
from paybridge.common.logging import bind_order, logger
from paybridge.common.metrics import notification_failures_total, notifications_total
from paybridge.common.status import OrderStatus, derive_order_status
from paybridge.common.tracing import tracer
from paybridge.services.orders.models import Order
from paybridge.services.orders.store import OrderStore


class NotificationService:
    """Notification Reconciler: verify, derive, overwrite."""

    def __init__(self, gateway: PaymentGateway, store: OrderStore, service_name: str = "notification") -> None:
        self.gateway = gateway
        self.store = store
        self.service_name = service_name

    async def handle_notification(self, raw_body: bytes) -> Order:
        """Reconcile one webhook delivery and return the updated order.

        Raises `UpstreamGatewayError` when verification fails, `UnknownOrder`
        when the order is not stored and `PersistenceError` when the write fails.
        Nothing is written unless verification succeeds.
        """

        try:
            with tracer.start_as_current_span("gateway.verify_notification"):
                status = await self.gateway.verify_notification(raw_body)
            bind_order(status.order_id)
            new_status = derive_order_status(status.transaction_status, status.fraud_status)
            order = self._persist(status, new_status)
        except PayBridgeError as exc:
            notification_failures_total.labels(service=self.service_name, error=exc.status).inc()
            logger.error("notification reconciliation failed status=%s error=%s", exc.status, exc.message)
            raise

        notifications_total.labels(service=self.service_name, order_status=new_status.value).inc()
        logger.info(
            "order reconciled order_id=%s transaction_status=%s fraud_status=%s order_status=%s",
            status.order_id,
            status.transaction_status,
            status.fraud_status,
            new_status.value,
        )
        return order

    def _persist(self, status: GatewayStatus, new_status: OrderStatus) -> Order:
        return self.store.update(
            status.order_id,
            {
                "status": new_status.value,
                "paid_at": datetime.now(timezone.utc),
                "raw_gateway_status": status.model_dump(mode="json"),
            },
        )
