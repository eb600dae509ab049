"""Rendering helpers for orders, inventory and alerts."""

from __future__ import annotations

from rich.text import Text

from atelier.models import DiningMode, InventoryItem, Order, OrderStatus, PaymentMethod, Product, Supplier

STATUS_STYLES = {
    OrderStatus.PENDING: "bold #0b1f0f on #f2c94c",
    OrderStatus.CONFIRMED: "bold #ffffff on #2f6db5",
    OrderStatus.SHIPPED: "bold #ffffff on #5b4bb5",
    OrderStatus.DELIVERED: "bold #0b1f0f on #5fbf72",
    OrderStatus.CANCELLED: "bold #ffffff on #b23a48",
}


def format_amount(amount: float) -> str:
    """Group thousands with spaces: 4500 -> '4 500'."""
    return f"{amount:,.0f}".replace(",", " ")


def badge_style(mode: DiningMode | None) -> str:
    """Return a consistent badge style for dining mode tags."""
    if mode == DiningMode.SUR_PLACE:
        return "bold #0b1f0f on #f2a65a"
    return "bold #ffffff on #2f6db5"


def dining_mode_label(mode: DiningMode | None) -> str:
    return "On site" if mode == DiningMode.SUR_PLACE else "Takeaway"


def format_status(status: OrderStatus) -> Text:
    return Text(f" {status.value} ", style=STATUS_STYLES[status])


def format_product_line(product: Product, currency: str) -> Text:
    text = Text()
    text.append(product.name)
    text.append(f"  {format_amount(product.price)} {currency}", style="bold")
    if product.is_promoted:
        text.append(" PROMO", style="bold #f2c94c")
    text.append(f"  [{product.category}]", style="dim")
    return text


def format_order_line(order: Order, currency: str) -> Text:
    """Render one order row: status badge, mode tag, product, buyer and total."""
    text = Text()
    text.append_text(format_status(order.status))
    text.append(" ")
    text.append(dining_mode_label(order.dining_mode), style=badge_style(order.dining_mode))
    text.append(f" {order.quantity}x {order.product_name}")
    text.append(f"  {format_amount(order.total_price)} {currency}", style="bold")
    text.append(f"\n      {order.customer_name} · {order.customer_contact} · {order.shipping_address}", style="dim")
    if order.payment_details is not None:
        if order.payment_details.method == PaymentMethod.MOBILE_MONEY:
            provider = order.payment_details.provider.value if order.payment_details.provider else "?"
            text.append(f" · {provider} {order.payment_details.transaction_id or ''}", style="dim")
        else:
            text.append(" · cash", style="dim")
    return text


def format_inventory_line(item: InventoryItem) -> Text:
    text = Text()
    style = "bold #ffb3b3" if item.is_low else ""
    text.append(f"{item.name}: {item.quantity:g} {item.unit}", style=style)
    text.append(f"  (alert at {item.threshold:g})", style="dim")
    if item.is_low:
        text.append(" LOW", style="bold #ffffff on #b23a48")
    return text


def format_supplier_line(supplier: Supplier) -> Text:
    text = Text()
    text.append(supplier.name)
    if supplier.role:
        text.append(f"  {supplier.role}", style="bold")
    text.append(f"  {supplier.email or supplier.phone}", style="dim")
    if supplier.verified:
        text.append(" VERIFIED", style="bold #0b1f0f on #5fbf72")
    else:
        text.append(" UNVERIFIED", style="dim")
    return text


def visible_rows(height: int, fallback: int = 8) -> int:
    if height <= 0:
        return fallback
    return max(1, height)


def window_bounds(total: int, rows: int, selected: int | None) -> tuple[int, int]:
    """Return the [start, end) slice of a list that keeps ``selected`` centered."""
    if total <= 0:
        return (0, 0)

    rows = max(1, rows)
    if total <= rows:
        return (0, total)

    if selected is None:
        start = 0
    else:
        start = max(0, selected - rows // 2)
        start = min(start, total - rows)

    return (start, start + rows)
