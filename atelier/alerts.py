"""Edge-triggered operator alerts for new orders and low stock."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from atelier.audio import AudioSignal, CueKind
from atelier.config import NOTICE_SECONDS, ORDER_ALERT_SECONDS, STOCK_ALERT_SECONDS
from atelier.data import low_stock_items
from atelier.models import InventoryItem, Order
from atelier.rendering import format_amount

logger = logging.getLogger(__name__)


class AlertKind(str, Enum):
    ORDER = "order"
    STOCK = "stock"
    INFO = "info"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AlertRecord:
    kind: AlertKind
    message: str
    severity: Severity


def order_message(order: Order | None, currency: str) -> str:
    amount = format_amount(order.total_price) if order is not None else "..."
    return f"NEW ORDER: {amount} {currency}"


def stock_message(critical_count: int) -> str:
    return f"STOCK ALERT: {critical_count} item(s) out of stock or below threshold!"


class AlertEngine:
    """Turns order and inventory snapshots into at most one displayed alert.

    The order channel compares collection sizes against the previous
    snapshot; the first snapshot only sets the baseline. The stock channel
    fires whenever the low-stock message differs from the message on
    display, so an unchanged count never repeats the alarm while shown.
    """

    def __init__(
        self,
        audio: AudioSignal | None = None,
        *,
        currency: str = "FCFA",
        order_seconds: float | None = ORDER_ALERT_SECONDS,
        stock_seconds: float | None = STOCK_ALERT_SECONDS,
        on_change: Callable[[AlertRecord | None], None] | None = None,
    ) -> None:
        self.audio = audio
        self.currency = currency
        self.order_seconds = order_seconds
        self.stock_seconds = stock_seconds
        self.on_change = on_change
        self.current: AlertRecord | None = None
        self.last_order_count = 0
        self.has_order_baseline = False
        self._expiry: asyncio.TimerHandle | None = None

    def on_orders(self, orders: Sequence[Order]) -> AlertRecord | None:
        count = len(orders)
        if not self.has_order_baseline:
            self.has_order_baseline = True
            self.last_order_count = count
            return None

        grew = count > self.last_order_count
        self.last_order_count = count
        if not grew:
            return None

        newest = max(orders, key=lambda order: order.date, default=None)
        logger.info("new order detected, %d orders", count)
        record = AlertRecord(AlertKind.ORDER, order_message(newest, self.currency), Severity.INFO)
        self._show(record, self.order_seconds)
        self._play(CueKind.ORDER)
        return record

    def on_inventory(self, inventory: Sequence[InventoryItem]) -> AlertRecord | None:
        critical = low_stock_items(inventory)
        if not critical:
            return None
        message = stock_message(len(critical))
        if self.current is not None and self.current.message == message:
            return None

        record = AlertRecord(AlertKind.STOCK, message, Severity.CRITICAL)
        self._show(record, self.stock_seconds)
        self._play(CueKind.ALERT)
        return record

    def notify(self, message: str, seconds: float | None = NOTICE_SECONDS) -> AlertRecord:
        """Show transient operator feedback without sound."""
        record = AlertRecord(AlertKind.INFO, message, Severity.INFO)
        self._show(record, seconds)
        return record

    def dismiss(self) -> None:
        """Clear the displayed alert. Channel baselines are kept."""
        self._cancel_expiry()
        self._set(None)

    def close(self) -> None:
        self._cancel_expiry()

    def _show(self, record: AlertRecord, seconds: float | None) -> None:
        self._cancel_expiry()
        self._set(record)
        if seconds is not None:
            self._expiry = asyncio.get_running_loop().call_later(seconds, self._expire, record)

    def _expire(self, record: AlertRecord) -> None:
        self._expiry = None
        if self.current is record:
            self._set(None)

    def _cancel_expiry(self) -> None:
        if self._expiry is not None:
            self._expiry.cancel()
            self._expiry = None

    def _set(self, record: AlertRecord | None) -> None:
        self.current = record
        if self.on_change is not None:
            self.on_change(record)

    def _play(self, kind: CueKind) -> None:
        if self.audio is not None:
            self.audio.trigger(kind)
