"""Single-product checkout flow, from buyer details to a committed order."""

from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable
from uuid import uuid4

from atelier.config import CHECKOUT_SUCCESS_DISMISS_SECONDS
from atelier.models import DiningMode, MobileProvider, Order, OrderStatus, PaymentDetails, PaymentMethod, Product, now_ms

logger = logging.getLogger(__name__)

CreateOrder = Callable[[Order], Awaitable[None]]

ON_SITE_LOCATION = "Restaurant - Sur Place"
DEFAULT_ERROR = "Something went wrong while saving your order."


class CheckoutStep(str, Enum):
    CLOSED = "closed"
    DETAILS = "details"
    PAYMENT = "payment"
    PROCESSING = "processing"
    SUCCESS = "success"


@dataclass(frozen=True)
class BuyerInfo:
    name: str = ""
    contact: str = ""
    location: str = ""

    def is_complete(self) -> bool:
        return all(value.strip() for value in (self.name, self.contact, self.location))


def default_location(mode: DiningMode) -> str:
    return ON_SITE_LOCATION if mode == DiningMode.SUR_PLACE else ""


def location_label(mode: DiningMode) -> str:
    return "Table number" if mode == DiningMode.SUR_PLACE else "Pickup / delivery address"


def cash_label(mode: DiningMode) -> str:
    return "At the counter" if mode == DiningMode.SUR_PLACE else "On delivery"


def new_order_id() -> str:
    return f"ord-{uuid4().hex[:12]}"


def new_transaction_id() -> str:
    return f"TXN-{secrets.randbelow(1_000_000)}"


class OrderCheckoutMachine:
    """Checkout state machine for one product and a fixed quantity.

    DETAILS -> PAYMENT -> PROCESSING -> SUCCESS, with PAYMENT -> DETAILS as
    the only user back edge and PROCESSING -> PAYMENT on a failed commit, so
    buyer details survive a retry. SUCCESS closes itself after a delay.

    After `close` (the owning screen went away) a commit that is still in
    flight resolves into the void: its result is logged and dropped.
    """

    def __init__(
        self,
        product: Product,
        quantity: int,
        dining_mode: DiningMode,
        create_order: CreateOrder,
        *,
        on_change: Callable[[OrderCheckoutMachine], None] | None = None,
        success_delay: float = CHECKOUT_SUCCESS_DISMISS_SECONDS,
        order_id_factory: Callable[[], str] = new_order_id,
        transaction_id_factory: Callable[[], str] = new_transaction_id,
    ) -> None:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        self.product = product
        self.quantity = quantity
        self.dining_mode = dining_mode
        self.create_order = create_order
        self.on_change = on_change
        self.success_delay = success_delay
        self.order_id_factory = order_id_factory
        self.transaction_id_factory = transaction_id_factory

        self.step = CheckoutStep.DETAILS
        self.buyer = BuyerInfo(location=default_location(dining_mode))
        self.payment_method = PaymentMethod.MOBILE_MONEY
        self.provider = MobileProvider.ORANGE
        self.error: str | None = None
        self.order: Order | None = None
        self.alive = True
        self._dismiss_handle: asyncio.TimerHandle | None = None

    @property
    def total_price(self) -> int:
        return self.product.price * self.quantity

    @property
    def location_label(self) -> str:
        return location_label(self.dining_mode)

    @property
    def cash_label(self) -> str:
        return cash_label(self.dining_mode)

    def update_buyer(self, *, name: str | None = None, contact: str | None = None, location: str | None = None) -> None:
        if self.step != CheckoutStep.DETAILS:
            return
        fields = (("name", name), ("contact", contact), ("location", location))
        changes = {key: value for key, value in fields if value is not None}
        self._apply(buyer=replace(self.buyer, **changes), error=None)

    def can_proceed(self) -> bool:
        return self.step == CheckoutStep.DETAILS and self.buyer.is_complete()

    def proceed_to_payment(self) -> bool:
        """Move to PAYMENT when every buyer field is filled; otherwise do nothing."""
        if not self.can_proceed():
            return False
        self._apply(step=CheckoutStep.PAYMENT)
        return True

    def back(self) -> bool:
        if self.step != CheckoutStep.PAYMENT:
            return False
        self._apply(step=CheckoutStep.DETAILS)
        return True

    def select_payment(self, method: PaymentMethod, provider: MobileProvider | None = None) -> None:
        if self.step != CheckoutStep.PAYMENT:
            return
        self._apply(payment_method=method, provider=provider or self.provider)

    def cancel(self) -> bool:
        """Abandon the flow from DETAILS or PAYMENT, discarding everything entered."""
        if self.step not in {CheckoutStep.DETAILS, CheckoutStep.PAYMENT}:
            return False
        self._apply(
            step=CheckoutStep.CLOSED,
            buyer=BuyerInfo(location=default_location(self.dining_mode)),
            payment_method=PaymentMethod.MOBILE_MONEY,
            provider=MobileProvider.ORANGE,
            error=None,
            order=None,
        )
        return True

    def build_order(self) -> Order:
        if self.payment_method == PaymentMethod.MOBILE_MONEY:
            payment = PaymentDetails.mobile_money(self.provider, self.transaction_id_factory())
        else:
            payment = PaymentDetails.cash()
        return Order(
            id=self.order_id_factory(),
            product_id=self.product.id,
            product_name=self.product.name,
            quantity=self.quantity,
            total_price=self.total_price,
            supplier_id=self.product.supplier_id,
            customer_name=self.buyer.name.strip(),
            customer_contact=self.buyer.contact.strip(),
            shipping_address=self.buyer.location.strip(),
            status=OrderStatus.PENDING,
            date=now_ms(),
            payment_details=payment,
            dining_mode=self.dining_mode,
        )

    async def submit(self) -> Order | None:
        """Commit the order once. Returns it on success, None otherwise."""
        if self.step != CheckoutStep.PAYMENT:
            return None
        order = self.build_order()
        self._apply(step=CheckoutStep.PROCESSING, error=None, order=order)

        try:
            await self.create_order(order)
        except Exception as exc:
            logger.warning("checkout commit failed for %s: %s", order.id, exc)
            self._apply(step=CheckoutStep.PAYMENT, error=str(exc) or DEFAULT_ERROR, order=None)
            return None

        if not self._apply(step=CheckoutStep.SUCCESS, error=None):
            return order
        self._dismiss_handle = asyncio.get_running_loop().call_later(self.success_delay, self._dismiss)
        return order

    def close(self) -> None:
        """Detach the machine from its screen; late commit results are dropped."""
        self.alive = False
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None

    def _dismiss(self) -> None:
        self._dismiss_handle = None
        self._apply(step=CheckoutStep.CLOSED)

    def _apply(self, **changes: object) -> bool:
        if not self.alive:
            logger.info("checkout closed, dropping update %s", sorted(changes))
            return False
        for key, value in changes.items():
            setattr(self, key, value)
        if self.on_change is not None:
            self.on_change(self)
        return True
