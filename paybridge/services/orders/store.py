"""Order store shared by the checkout and notification services."""

from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from paybridge.common.errors import PersistenceError, UnknownOrder
from paybridge.services.orders.models import Order


# Creation-time fields (amount, token, owner) are never rewritten.
UPDATABLE_FIELDS = frozenset({"status", "paid_at", "raw_gateway_status"})


class OrderStore:
    """Create-once / overwrite-status access to the `orders` table."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def create(self, order_id: str, record: dict[str, Any]) -> Order:
        """Insert a new order; an existing `order_id` is a conflict, never a merge."""

        with self.session_factory() as db:
            order = Order(order_id=order_id, **record)
            db.add(order)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise PersistenceError(f"order {order_id} already exists") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError(f"failed to create order {order_id}", details=str(exc)) from exc
            return order

    def update(self, order_id: str, fields: dict[str, Any]) -> Order:
        """Overwrite reconciliation fields of an existing order."""

        illegal = set(fields) - UPDATABLE_FIELDS
        if illegal:
            raise ValueError(f"fields cannot be updated: {sorted(illegal)}")

        with self.session_factory() as db:
            try:
                result = db.execute(update(Order).where(Order.order_id == order_id).values(**fields))
                if result.rowcount == 0:
                    db.rollback()
                    raise UnknownOrder(f"order {order_id} not found")
                db.commit()
                return db.get(Order, order_id)
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError(f"failed to update order {order_id}", details=str(exc)) from exc

    def get(self, order_id: str) -> Order | None:
        with self.session_factory() as db:
            try:
                return db.get(Order, order_id)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"failed to read order {order_id}", details=str(exc)) from exc
