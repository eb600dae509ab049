"""Checkout modal screen."""

from __future__ import annotations

import asyncio

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from atelier.checkout import CheckoutStep, CreateOrder, OrderCheckoutMachine
from atelier.models import DiningMode, MobileProvider, Order, PaymentMethod, Product
from atelier.rendering import badge_style, dining_mode_label, format_amount

# Commits keep running after the modal is gone; hold them until they settle.
_IN_FLIGHT: set[asyncio.Task[Order | None]] = set()

_PROVIDERS = list(MobileProvider)


class CheckoutModal(ModalScreen[Order | None]):
    """Collect buyer details and payment choice, then commit one order."""

    CSS = """
    CheckoutModal {
        align: center middle;
        background: $background 60%;
    }

    #checkout-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #checkout-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #checkout-summary {
        margin-bottom: 1;
        color: white;
    }

    #checkout-body {
        margin-bottom: 1;
        color: white;
    }

    #checkout-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #checkout-help {
        color: #dddddd;
    }
    """

    def __init__(
        self, product: Product, quantity: int, dining_mode: DiningMode, create_order: CreateOrder, currency: str
    ) -> None:
        super().__init__()
        self.currency = currency
        self.field_index = 0
        self.machine = OrderCheckoutMachine(product, quantity, dining_mode, create_order, on_change=self._on_machine_change)

    def compose(self) -> ComposeResult:
        with Container(id="checkout-dialog"):
            yield Static(id="checkout-title")
            yield Static(id="checkout-summary")
            yield Static(id="checkout-body")
            yield Static(id="checkout-error")
            yield Static(id="checkout-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_unmount(self) -> None:
        self.machine.close()

    def on_key(self, event: Key) -> None:
        step = self.machine.step
        if event.key in {"escape", "ctrl+c"}:
            self.machine.cancel()
            event.stop()
            return

        if step == CheckoutStep.DETAILS:
            self._details_key(event)
        elif step == CheckoutStep.PAYMENT:
            self._payment_key(event)
        elif step == CheckoutStep.SUCCESS and event.key == "enter":
            self.dismiss(self.machine.order)
            event.stop()

    def _fields(self) -> list[tuple[str, str]]:
        return [("name", "Name"), ("contact", "Contact / phone"), ("location", self.machine.location_label)]

    def _details_key(self, event: Key) -> None:
        field, _ = self._fields()[self.field_index]
        value = getattr(self.machine.buyer, field)

        if event.key == "enter":
            self.machine.proceed_to_payment()
        elif event.key == "down":
            self.field_index = (self.field_index + 1) % 3
            self._refresh_content()
        elif event.key == "up":
            self.field_index = (self.field_index - 1) % 3
            self._refresh_content()
        elif event.key == "backspace":
            if value:
                self.machine.update_buyer(**{field: value[:-1]})
        elif event.is_printable and event.character:
            self.machine.update_buyer(**{field: value + event.character})
        else:
            return
        event.stop()

    def _payment_key(self, event: Key) -> None:
        if event.key == "enter":
            task = asyncio.create_task(self.machine.submit())
            _IN_FLIGHT.add(task)
            task.add_done_callback(_IN_FLIGHT.discard)
        elif event.key in {"b", "left"}:
            self.machine.back()
        elif event.key == "m":
            method = (
                PaymentMethod.CASH_ON_DELIVERY
                if self.machine.payment_method == PaymentMethod.MOBILE_MONEY
                else PaymentMethod.MOBILE_MONEY
            )
            self.machine.select_payment(method)
        elif event.key == "p":
            next_provider = _PROVIDERS[(_PROVIDERS.index(self.machine.provider) + 1) % len(_PROVIDERS)]
            self.machine.select_payment(self.machine.payment_method, next_provider)
        else:
            return
        event.stop()

    def _on_machine_change(self, machine: OrderCheckoutMachine) -> None:
        if machine.step == CheckoutStep.CLOSED:
            self.dismiss(machine.order)
            return
        self._refresh_content()

    def _refresh_content(self) -> None:
        machine = self.machine
        self.query_one("#checkout-title", Static).update(self._title())

        summary = Text()
        summary.append(dining_mode_label(machine.dining_mode), style=badge_style(machine.dining_mode))
        summary.append(f" {machine.quantity}x {machine.product.name}  ")
        summary.append(f"{format_amount(machine.total_price)} {self.currency}", style="bold")
        self.query_one("#checkout-summary", Static).update(summary)

        self.query_one("#checkout-body", Static).update(self._body())
        self.query_one("#checkout-error", Static).update(Text(machine.error or ""))
        self.query_one("#checkout-help", Static).update(self._help())

    def _title(self) -> str:
        return {
            CheckoutStep.DETAILS: "Your details",
            CheckoutStep.PAYMENT: "Payment",
            CheckoutStep.PROCESSING: "Processing",
            CheckoutStep.SUCCESS: "Order placed!",
        }.get(self.machine.step, "")

    def _body(self) -> Text:
        machine = self.machine
        text = Text()
        if machine.step == CheckoutStep.DETAILS:
            for idx, (field, label) in enumerate(self._fields()):
                if idx > 0:
                    text.append("\n")
                pointer = "➤ " if idx == self.field_index else "  "
                text.append(f"{pointer}{label}: ")
                text.append(getattr(machine.buyer, field) or "", style="bold")
            return text

        if machine.step == CheckoutStep.PAYMENT:
            mobile = machine.payment_method == PaymentMethod.MOBILE_MONEY
            text.append("➤ " if mobile else "  ")
            text.append(f"Mobile money ({machine.provider.value})\n")
            text.append("  " if mobile else "➤ ")
            text.append(f"Cash, {machine.cash_label.lower()}")
            return text

        if machine.step == CheckoutStep.PROCESSING:
            if machine.payment_method == PaymentMethod.MOBILE_MONEY:
                return Text("Validating mobile payment...")
            return Text("Saving your order...")

        if machine.dining_mode == DiningMode.SUR_PLACE:
            text.append("Your order went to the kitchen. We will call you when it is ready!")
        else:
            text.append("The vendor received your order and will contact you for delivery.")
        return text

    def _help(self) -> str:
        step = self.machine.step
        if step == CheckoutStep.DETAILS:
            ready = "" if self.machine.can_proceed() else " (fill every field)"
            return f"Type to edit. Up/Down field. Enter continue{ready}. Esc cancel."
        if step == CheckoutStep.PAYMENT:
            return "M switch method. P switch provider. Enter pay. B back. Esc cancel."
        if step == CheckoutStep.SUCCESS:
            return "Enter close. Closing automatically..."
        return ""
