"""Order ledger keyed by generated order identifiers."""

from __future__ import annotations

import secrets
from collections.abc import Callable
from decimal import Decimal

import structlog

from .constants import DEFAULT_ORDER_ID_PREFIX, MAX_ID_ATTEMPTS
from .enums import OrderStatus
from .exceptions import IdentifierExhaustedError, NotFoundError, RuleViolationError
from .models import Order
from .stores import InMemoryStore, Store


def random_order_suffix() -> str:
    return str(100_000 + secrets.randbelow(900_000))


class OrderLedger:
    """Sole owner of orders. Orders are never deleted."""

    def __init__(
        self,
        store: Store[str, Order] | None = None,
        *,
        prefix: str = DEFAULT_ORDER_ID_PREFIX,
        suffix_factory: Callable[[], str] = random_order_suffix,
    ) -> None:
        self._store: Store[str, Order] = store if store is not None else InMemoryStore()
        self._prefix = prefix
        self._suffix_factory = suffix_factory
        self._logger = structlog.get_logger(__name__)

    def create(self, *, customer: str, package: str, amount: Decimal) -> Order:
        """Create a PENDING order under a freshly generated unique id."""

        for _ in range(MAX_ID_ATTEMPTS):
            order = Order(
                order_id=f"{self._prefix}{self._suffix_factory()}",
                customer=customer,
                package=package,
                amount=amount,
            )
            if self._store.put_if_absent(order.order_id, order):
                self._logger.info(
                    "order_created",
                    order_id=order.order_id,
                    customer=customer,
                    amount=str(amount),
                )
                return order
        raise IdentifierExhaustedError("Failed to generate unique order id")

    def get(self, order_id: str) -> Order | None:
        return self._store.get(order_id)

    def require(self, order_id: str) -> Order:
        order = self._store.get(order_id)
        if order is None:
            raise NotFoundError(f"❌ Order {order_id} not found.")
        return order

    def find_for_customer(self, order_id: str, customer: str) -> Order:
        order = self._store.get(order_id)
        if order is None or order.customer != customer:
            raise NotFoundError(f"❌ Order {order_id} not found.")
        return order

    def by_customer(self, customer: str) -> list[Order]:
        return [order for _, order in self._store.items() if order.customer == customer]

    def all(self) -> list[Order]:
        return sorted(
            (order for _, order in self._store.items()), key=lambda o: o.timestamp
        )

    def set_recipient(self, order_id: str, recipient: str) -> Order:
        return self._mutate(order_id, recipient=recipient)

    def set_payment(self, order_id: str, payment: str) -> Order:
        return self._mutate(order_id, payment=payment)

    def update_status(self, order_id: str, status: str, remark: str = "") -> Order:
        order = self._mutate(order_id, status=status, remark=remark)
        self._logger.info("order_status_updated", order_id=order_id, status=status)
        return order

    def confirm_payment(self, order_id: str, customer: str) -> Order:
        """Move the customer's PENDING order to CONFIRMED."""

        def _confirm(current: Order | None) -> Order:
            if current is None or current.customer != customer:
                raise NotFoundError(f"❌ Order {order_id} not found.")
            if current.status != OrderStatus.PENDING:
                raise RuleViolationError(
                    f"ℹ️ Order *{order_id}* is already *{current.status}*."
                )
            return current.model_copy(update={"status": OrderStatus.CONFIRMED.value})

        order = self._store.update(order_id, _confirm)
        self._logger.info("order_payment_asserted", order_id=order_id)
        return order

    def mark_commission_paid(self, order_id: str) -> bool:
        """Flag the order's referral commission as paid; False if it already was."""

        flipped: list[bool] = []

        def _flag(current: Order | None) -> Order:
            if current is None:
                raise NotFoundError(f"❌ Order {order_id} not found.")
            flipped.append(not current.commission_paid)
            return current.model_copy(update={"commission_paid": True})

        self._store.update(order_id, _flag)
        return flipped[0]

    def _mutate(self, order_id: str, **changes: object) -> Order:
        def _apply(current: Order | None) -> Order:
            if current is None:
                raise NotFoundError(f"❌ Order {order_id} not found.")
            return current.model_copy(update=changes)

        return self._store.update(order_id, _apply)
