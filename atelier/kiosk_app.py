"""Customer kiosk: browse the catalog and check out one product."""

from __future__ import annotations

import functools
import logging
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.widgets import Header, Static

from atelier import commands
from atelier.checkout_modal import CheckoutModal
from atelier.data import ALL_CATEGORIES, filter_products, product_categories
from atelier.models import AppSettings, DiningMode, Order, Product
from atelier.realtime import PRODUCTS, SETTINGS, RealtimeStore
from atelier.rendering import (
    badge_style,
    dining_mode_label,
    format_amount,
    format_product_line,
    visible_rows,
    window_bounds,
)

logger = logging.getLogger(__name__)


class KioskApp(App):
    """A Textual app where customers search the menu and place orders."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #catalog-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #detail-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 4;
    }

    #products-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    search_text = reactive("")
    category = reactive(ALL_CATEGORIES)
    selected_index = reactive(0)
    quantity = reactive(1)

    BINDINGS = [
        ("up", "cycle_products(-1)", "Previous"),
        ("down", "cycle_products(1)", "Next"),
        ("left", "cycle_category(-1)", "Previous category"),
        ("right", "cycle_category(1)", "Next category"),
        ("enter", "checkout", "Order"),
        ("backspace", "backspace_query", "Delete query char"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, realtime: RealtimeStore, dining_mode: DiningMode) -> None:
        super().__init__()
        self.realtime = realtime
        self.dining_mode = dining_mode
        self.system_status = ""
        self._unsubscribe: list[Callable[[], None]] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="catalog-pane"):
                yield Static(id="search-bar")
                yield Static(id="products-list")
            with Vertical(id="detail-pane"):
                yield Static("Selection", classes="pane-title")
                yield Static(id="product-detail")

    def on_mount(self) -> None:
        self._unsubscribe = [
            self.realtime.listen(PRODUCTS, lambda _: self._refresh_all()),
            self.realtime.listen(SETTINGS, self._on_settings),
        ]
        self._on_settings(self.realtime.settings)
        self._refresh_all()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, CheckoutModal):
            return

        if event.character in {"+", "-"}:
            self.quantity = max(1, self.quantity + (1 if event.character == "+" else -1))
            self._refresh_detail()
            event.stop()
            return

        if not event.is_printable or not event.character or not (event.character.isalnum() or event.character == " "):
            return
        self.search_text += event.character
        self.selected_index = 0
        self._refresh_all()
        event.stop()

    def action_cycle_products(self, delta: int) -> None:
        if isinstance(self.screen, CheckoutModal):
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_all()

    def action_cycle_category(self, delta: int) -> None:
        if isinstance(self.screen, CheckoutModal):
            return
        categories = product_categories(self.realtime.products)
        idx = categories.index(self.category) if self.category in categories else 0
        self.category = categories[(idx + delta) % len(categories)]
        self.selected_index = 0
        self._refresh_all()

    def action_backspace_query(self) -> None:
        if isinstance(self.screen, CheckoutModal):
            return
        if not self.search_text:
            return
        self.search_text = self.search_text[:-1]
        self.selected_index = 0
        self._refresh_all()

    def action_checkout(self) -> None:
        if isinstance(self.screen, CheckoutModal):
            return
        product = self._selected_product()
        if product is None:
            return
        if self.realtime.settings.is_maintenance_mode:
            self.system_status = "Ordering is paused for maintenance."
            self._refresh_search_bar()
            return

        modal = CheckoutModal(
            product,
            self.quantity,
            self.dining_mode,
            functools.partial(commands.create_order, self.realtime.store),
            self.realtime.settings.currency,
        )
        self.push_screen(modal, callback=self._on_checkout_closed)

    def _on_checkout_closed(self, order: Order | None) -> None:
        self.quantity = 1
        if order is not None:
            logger.info("kiosk order %s placed", order.id)
            self.system_status = f"Order {order.id} placed"
        self._refresh_all()

    def _on_settings(self, settings: AppSettings) -> None:
        self.title = settings.app_name
        self.sub_title = settings.slogan

    def _filtered_results(self) -> list[Product]:
        return filter_products(self.realtime.products, self.search_text, self.category)

    def _selected_product(self) -> Product | None:
        results = self._filtered_results()
        if not results:
            return None
        return results[min(self.selected_index, len(results) - 1)]

    def _refresh_all(self) -> None:
        self._refresh_search_bar()
        self._refresh_products()
        self._refresh_detail()

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        text = Text()
        text.append(dining_mode_label(self.dining_mode), style=badge_style(self.dining_mode))
        text.append(f" [{self.category}] search: {self.search_text}")
        text.append(f"\n{self.system_status or 'Type to search. Left/Right category. +/- quantity. Enter order.'}")
        bar.update(text)

    def _refresh_products(self) -> None:
        try:
            widget = self.query_one("#products-list", Static)
        except NoMatches:
            return
        if not self.realtime.has_snapshot(PRODUCTS):
            widget.update("Connecting...")
            return
        results = self._filtered_results()
        if not results:
            widget.update("No products")
            return

        if self.selected_index >= len(results):
            self.selected_index = 0

        currency = self.realtime.settings.currency
        start, end = window_bounds(len(results), visible_rows(widget.size.height), self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.selected_index else "  ")
            lines.append_text(format_product_line(results[idx], currency))
        if end < len(results):
            lines.append("\n⋮", style="dim")
        widget.update(lines)

    def _refresh_detail(self) -> None:
        try:
            widget = self.query_one("#product-detail", Static)
        except NoMatches:
            return
        product = self._selected_product()
        if product is None:
            widget.update("")
            return

        currency = self.realtime.settings.currency
        text = Text()
        text.append(f"{product.name}\n", style="bold")
        if product.description:
            text.append(f"{product.description}\n", style="dim")
        if product.tags:
            text.append(" ".join(f"#{tag}" for tag in product.tags) + "\n", style="dim")
        text.append(f"\nQuantity: {self.quantity}\n")
        text.append(f"Total: {format_amount(product.price * self.quantity)} {currency}", style="bold")
        widget.update(text)
