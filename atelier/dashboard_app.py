"""Operator dashboard: live orders, stock and alerts."""

from __future__ import annotations

import functools
import logging
from dataclasses import replace
from typing import Callable, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from atelier import commands
from atelier.alerts import AlertEngine, AlertRecord, Severity
from atelier.audio import AudioSignal, BellOutput
from atelier.data import dashboard_stats
from atelier.fulfillment import InvalidTransitionError, OrderFulfillmentMachine, allowed_transitions
from atelier.login_modal import LoginModal
from atelier.models import AppSettings, InventoryItem, Order, OrderStatus, Product, Supplier
from atelier.persistence import StoreError
from atelier.realtime import INVENTORY, ORDERS, PRODUCTS, SETTINGS, SUPPLIERS, RealtimeStore
from atelier.rendering import (
    format_amount,
    format_inventory_line,
    format_order_line,
    format_product_line,
    format_supplier_line,
    visible_rows,
    window_bounds,
)

logger = logging.getLogger(__name__)

PANES = ("orders", "inventory", "products", "suppliers")
_FEED_KEYS = {"orders": ORDERS, "inventory": INVENTORY, "products": PRODUCTS, "suppliers": SUPPLIERS}

_STATUS_KEYS = {
    "c": OrderStatus.CONFIRMED,
    "x": OrderStatus.CANCELLED,
    "s": OrderStatus.SHIPPED,
    "d": OrderStatus.DELIVERED,
}

_ALERT_STYLES = {
    Severity.INFO: "bold #0b1f0f on #5fbf72",
    Severity.WARNING: "bold #0b1f0f on #f2c94c",
    Severity.CRITICAL: "bold #ffffff on #b23a48",
}


class DashboardApp(App):
    """A Textual app for the kitchen/operator side."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #alert-banner {
        height: auto;
        padding: 0 1;
    }

    #stats {
        border: heavy $secondary;
        padding: 0 1;
        height: 5;
    }

    #main-layout {
        height: 1fr;
    }

    .pane {
        width: 1fr;
        border: round $surface;
        padding: 0 1;
    }

    .pane.active {
        border: round $primary;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }

    .pane-list {
        height: 1fr;
    }

    #status-bar {
        height: 1;
        color: #dddddd;
        padding: 0 1;
    }
    """

    pane_index = reactive(0)

    BINDINGS = [
        ("left", "cycle_pane(-1)", "Previous pane"),
        ("right", "cycle_pane(1)", "Next pane"),
        ("up", "move_selection(-1)", "Up"),
        ("down", "move_selection(1)", "Down"),
        ("escape", "dismiss_alert", "Dismiss alert"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, realtime: RealtimeStore) -> None:
        super().__init__()
        self.realtime = realtime
        self.selected = {pane: 0 for pane in PANES}
        self.audio = AudioSignal(BellOutput(self.bell), realtime.store)
        self.alerts = AlertEngine(self.audio, currency=realtime.settings.currency, on_change=self._on_alert)
        self.fulfillment = OrderFulfillmentMachine(
            functools.partial(commands.update_order_status, realtime.store), report=self._report_failure
        )
        self._unsubscribe: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="alert-banner")
        yield Static(id="stats")
        with Horizontal(id="main-layout"):
            with Vertical(id="orders-pane", classes="pane active"):
                yield Static("Orders", classes="pane-title")
                yield Static(id="orders-list", classes="pane-list")
            with Vertical(id="inventory-pane", classes="pane"):
                yield Static("Stock", classes="pane-title")
                yield Static(id="inventory-list", classes="pane-list")
            with Vertical(id="products-pane", classes="pane"):
                yield Static("Catalog", classes="pane-title")
                yield Static(id="products-list", classes="pane-list")
            with Vertical(id="suppliers-pane", classes="pane"):
                yield Static("Accounts", classes="pane-title")
                yield Static(id="suppliers-list", classes="pane-list")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        realtime = self.realtime
        # Snapshots delivered before mount: orders become the baseline, low stock still alerts.
        if realtime.has_snapshot(ORDERS):
            self.alerts.on_orders(realtime.orders)
        if realtime.has_snapshot(INVENTORY):
            self.alerts.on_inventory(realtime.inventory)
        self._unsubscribe = [
            realtime.listen(ORDERS, self._on_orders),
            realtime.listen(INVENTORY, self._on_inventory),
            realtime.listen(PRODUCTS, lambda _: self._refresh_all()),
            realtime.listen(SUPPLIERS, lambda _: self._refresh_all()),
            realtime.listen(SETTINGS, self._on_settings),
        ]
        self._on_settings(realtime.settings)
        self.push_screen(LoginModal(self._check_login), callback=self._on_login)

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self.alerts.close()

    def _check_login(self, login: str, password: str) -> bool:
        if commands.check_admin_credentials(login, password):
            return True
        staff = [account for account in self.realtime.suppliers if account.role and account.verified]
        account = commands.authenticate_supplier(staff, login, password)
        if account is not None:
            logger.info("staff login %s (%s)", account.name, account.role)
        return account is not None

    def _on_login(self, granted: bool | None) -> None:
        if not granted:
            logger.info("operator login abandoned")
            self.exit()
            return
        logger.info("operator logged in")
        self._refresh_all()
        self._on_alert(self.alerts.current)

    async def on_key(self, event: Key) -> None:
        if isinstance(self.screen, LoginModal):
            return

        pane = PANES[self.pane_index]
        if event.character == "a":
            self._toggle_sound()
        elif event.character == "m":
            await self._toggle_maintenance()
        elif pane == "orders" and event.character in _STATUS_KEYS:
            await self._transition_selected(_STATUS_KEYS[event.character])
        elif pane == "inventory" and event.character in {"+", "-"}:
            await self._adjust_selected_item(1 if event.character == "+" else -1)
        elif pane == "products" and event.character == "p":
            await self._toggle_selected_promotion()
        elif pane == "suppliers" and event.character == "v":
            await self._toggle_selected_verification()
        elif pane in {"inventory", "products"} and event.key == "delete":
            await self._delete_selected(pane)
        else:
            return
        event.stop()

    def action_cycle_pane(self, delta: int) -> None:
        if isinstance(self.screen, LoginModal):
            return
        self.pane_index = (self.pane_index + delta) % len(PANES)
        for idx, pane in enumerate(PANES):
            try:
                self.query_one(f"#{pane}-pane").set_class(idx == self.pane_index, "active")
            except NoMatches:
                return
        self._refresh_status_bar()

    def action_move_selection(self, delta: int) -> None:
        if isinstance(self.screen, LoginModal):
            return
        pane = PANES[self.pane_index]
        total = len(self._rows(pane))
        if total:
            self.selected[pane] = (self.selected[pane] + delta) % total
        self._refresh_all()

    def action_dismiss_alert(self) -> None:
        if isinstance(self.screen, LoginModal):
            return
        self.alerts.dismiss()

    def _toggle_sound(self) -> None:
        if self.audio.enabled:
            self.audio.disable()
            self.alerts.notify("Sound disabled.")
        else:
            self.audio.enable()
            self.alerts.notify("Sound enabled!")
        self._refresh_status_bar()

    async def _toggle_maintenance(self) -> None:
        settings = self.realtime.settings
        try:
            await commands.update_settings(
                self.realtime.store, replace(settings, is_maintenance_mode=not settings.is_maintenance_mode)
            )
        except StoreError as exc:
            self._report_failure(f"Settings update failed: {exc}")

    async def _transition_selected(self, target: OrderStatus) -> None:
        order = self._selected_row("orders")
        if order is None:
            return
        try:
            await self.fulfillment.transition(order, target)
        except InvalidTransitionError as exc:
            self.notify(str(exc), severity="warning")

    async def _adjust_selected_item(self, delta: int) -> None:
        item = self._selected_row("inventory")
        if item is None:
            return
        try:
            await commands.adjust_inventory_quantity(self.realtime.store, item, delta)
        except StoreError as exc:
            self._report_failure(f"Stock update failed: {exc}")

    async def _toggle_selected_promotion(self) -> None:
        product = self._selected_row("products")
        if product is None:
            return
        try:
            await commands.toggle_product_promotion(self.realtime.store, product)
        except StoreError as exc:
            self._report_failure(f"Promotion update failed: {exc}")

    async def _toggle_selected_verification(self) -> None:
        account = self._selected_row("suppliers")
        if account is None:
            return
        try:
            await commands.toggle_supplier_verification(self.realtime.store, account)
        except StoreError as exc:
            self._report_failure(f"Verification update failed: {exc}")

    async def _delete_selected(self, pane: str) -> None:
        row = self._selected_row(pane)
        if row is None:
            return
        delete = commands.delete_inventory_item if pane == "inventory" else commands.delete_product
        try:
            await delete(self.realtime.store, row.id)
        except StoreError as exc:
            self._report_failure(f"Delete failed: {exc}")
            return
        self.notify(f"Removed {row.name}")

    def _report_failure(self, message: str) -> None:
        self.notify(message, severity="error")

    def _on_orders(self, orders: Sequence[Order]) -> None:
        self.alerts.on_orders(orders)
        self._refresh_all()

    def _on_inventory(self, inventory: Sequence[InventoryItem]) -> None:
        self.alerts.on_inventory(inventory)
        self._refresh_all()

    def _on_settings(self, settings: AppSettings) -> None:
        self.title = f"{settings.app_name} · Dashboard"
        self.sub_title = "MAINTENANCE" if settings.is_maintenance_mode else settings.slogan
        self.alerts.currency = settings.currency
        self._refresh_all()

    def _on_alert(self, record: AlertRecord | None) -> None:
        try:
            banner = self.query_one("#alert-banner", Static)
        except NoMatches:
            return
        if record is None:
            banner.update("")
            return
        text = Text()
        text.append(f" {record.message} ", style=_ALERT_STYLES[record.severity])
        text.append("  Esc to dismiss", style="dim")
        banner.update(text)

    def _rows(self, pane: str) -> Sequence[Order | InventoryItem | Product | Supplier]:
        if pane == "orders":
            return self.realtime.orders
        if pane == "inventory":
            return self.realtime.inventory
        if pane == "suppliers":
            return self.realtime.suppliers
        return self.realtime.products

    def _selected_row(self, pane: str):
        rows = self._rows(pane)
        if not rows:
            return None
        return rows[min(self.selected[pane], len(rows) - 1)]

    def _refresh_all(self) -> None:
        self._refresh_stats()
        for pane in PANES:
            self._refresh_list(pane)
        self._refresh_status_bar()

    def _refresh_stats(self) -> None:
        try:
            widget = self.query_one("#stats", Static)
        except NoMatches:
            return
        realtime = self.realtime
        stats = dashboard_stats(realtime.orders, realtime.products, realtime.inventory, realtime.suppliers)
        currency = realtime.settings.currency
        text = Text()
        text.append(f"Revenue {format_amount(stats.total_revenue)} {currency}", style="bold")
        text.append(f"   Orders {stats.total_orders}   Pending {stats.pending_orders}")
        text.append(f"   Low stock {len(stats.low_stock_items)}   Rating {stats.average_rating}")
        if stats.popular_products:
            popular = ", ".join(f"{name} ({count})" for name, count in stats.popular_products)
            text.append(f"\nTop: {popular}", style="dim")
        widget.update(text)

    def _refresh_list(self, pane: str) -> None:
        try:
            widget = self.query_one(f"#{pane}-list", Static)
        except NoMatches:
            return
        rows = self._rows(pane)
        if not rows:
            widget.update("(nothing yet)" if self.realtime.has_snapshot(_FEED_KEYS[pane]) else "Connecting...")
            return

        selected = self.selected[pane]
        if selected >= len(rows):
            selected = self.selected[pane] = len(rows) - 1

        # Orders take two lines each.
        height = widget.size.height
        rows_fit = visible_rows(height // 2 if pane == "orders" else height)
        start, end = window_bounds(len(rows), rows_fit, selected)
        currency = self.realtime.settings.currency

        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == selected else "  ")
            row = rows[idx]
            if pane == "orders":
                lines.append_text(format_order_line(row, currency))
            elif pane == "inventory":
                lines.append_text(format_inventory_line(row))
            elif pane == "suppliers":
                lines.append_text(format_supplier_line(row))
            else:
                lines.append_text(format_product_line(row, currency))
        if end < len(rows):
            lines.append("\n⋮", style="dim")
        widget.update(lines)

    def _refresh_status_bar(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        pane = PANES[self.pane_index]
        sound = "on" if self.audio.enabled else "off"
        hints = {
            "orders": self._order_hint(),
            "inventory": "+/- adjust quantity · Del remove",
            "products": "P toggle promotion · Del remove",
            "suppliers": "V toggle verification",
        }[pane]
        bar.update(Text(f"[{pane}] {hints}  ·  A sound ({sound})  ·  M maintenance  ·  Left/Right pane  ·  Ctrl+Q quit"))

    def _order_hint(self) -> str:
        order = self._selected_row("orders")
        if order is None:
            return ""
        keys = {status: key.upper() for key, status in _STATUS_KEYS.items()}
        moves = [f"{keys[status]} {status.value}" for status in allowed_transitions(order.status)]
        return " · ".join(moves) if moves else f"{order.status.value} (final)"
