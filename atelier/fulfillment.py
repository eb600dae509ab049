"""Order fulfillment commands over the server-observed status machine."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from atelier.models import Order, OrderStatus
from atelier.persistence import StoreError

logger = logging.getLogger(__name__)

TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.SHIPPED,),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

StatusWriter = Callable[[str, OrderStatus], Awaitable[None]]


class InvalidTransitionError(ValueError):
    """A status change that skips a state, moves backward or leaves a terminal state."""


def allowed_transitions(status: OrderStatus) -> tuple[OrderStatus, ...]:
    return TRANSITIONS[status]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[current]


def is_terminal(status: OrderStatus) -> bool:
    return not TRANSITIONS[status]


class OrderFulfillmentMachine:
    """Issues status writes for orders; holds no order state of its own.

    The order passed in is the latest snapshot. A failed write leaves it
    untouched: the next snapshot from the store is authoritative.
    """

    def __init__(self, write_status: StatusWriter, report: Callable[[str], None] | None = None) -> None:
        self.write_status = write_status
        self.report = report

    async def transition(self, order: Order, target: OrderStatus) -> bool:
        """Write ``target`` for ``order``. Returns False if the write failed."""
        if order.status == target:
            return True
        if not can_transition(order.status, target):
            raise InvalidTransitionError(f"{order.status.value} -> {target.value} is not allowed")

        try:
            await self.write_status(order.id, target)
        except StoreError as exc:
            logger.warning("transition %s -> %s failed for %s: %s", order.status.value, target.value, order.id, exc)
            if self.report is not None:
                self.report(f"Could not update order {order.id[:8]}: {exc}")
            return False
        return True

    async def confirm(self, order: Order) -> bool:
        return await self.transition(order, OrderStatus.CONFIRMED)

    async def cancel(self, order: Order) -> bool:
        return await self.transition(order, OrderStatus.CANCELLED)

    async def ship(self, order: Order) -> bool:
        return await self.transition(order, OrderStatus.SHIPPED)

    async def deliver(self, order: Order) -> bool:
        return await self.transition(order, OrderStatus.DELIVERED)
