"""Default settings, demo seed data and catalog/statistics helpers."""

from __future__ import annotations

from typing import Iterable, Sequence

from atelier.models import AppSettings, DashboardStats, InventoryItem, Order, OrderStatus, Product, Supplier

ALL_CATEGORIES = "Tout"

DEFAULT_SETTINGS = AppSettings(
    app_name="Atelier des pates",
    slogan="Bienvenue à ATELIER DES PATES ! Ça nous fait plaisir de vous voir, qu'est-ce qui vous tente ?",
    contact_email="contact@atelierdespates.ci",
    contact_phone="+225 07 00 00 00 00",
    contact_address="Abidjan, Côte d'Ivoire",
    currency="FCFA",
    default_shipping_fees=0,
    service_fees=0,
    is_maintenance_mode=False,
)

# Demo catalog written by `atelier seed`.
SEED_PRODUCTS: list[dict[str, object]] = [
    {
        "name": "Spaghetti Bolognaise",
        "description": "Sauce tomate maison, boeuf haché, parmesan.",
        "price": 3500,
        "category": "Pâtes",
        "tags": ["boeuf", "classique"],
        "isPromoted": True,
    },
    {
        "name": "Penne Carbonara",
        "description": "Crème, lardons, jaune d'oeuf, poivre noir.",
        "price": 4000,
        "category": "Pâtes",
        "tags": ["crème"],
    },
    {
        "name": "Lasagnes Maison",
        "description": "Gratinées au four, portion généreuse.",
        "price": 5000,
        "category": "Four",
        "tags": ["gratin", "boeuf"],
    },
    {
        "name": "Jus de Bissap",
        "description": "Hibiscus, menthe fraîche.",
        "price": 1000,
        "category": "Boissons",
        "tags": ["frais"],
    },
]

SEED_INVENTORY: list[dict[str, object]] = [
    {"name": "Spaguetti", "quantity": 40, "unit": "kg", "threshold": 5},
    {"name": "Oeufs", "quantity": 12, "unit": "plateaux", "threshold": 4},
    {"name": "Tomates", "quantity": 25, "unit": "kg", "threshold": 8},
    {"name": "Crème", "quantity": 6, "unit": "litres", "threshold": 3},
]


def product_categories(products: Iterable[Product]) -> list[str]:
    """Return the category filter entries, "all" first, in first-seen order."""
    seen: list[str] = []
    for product in products:
        if product.category not in seen:
            seen.append(product.category)
    return [ALL_CATEGORIES, *seen]


def filter_products(products: Iterable[Product], search: str = "", category: str = ALL_CATEGORIES) -> list[Product]:
    """Match search text against name, description, supplier and tags."""
    needle = search.lower()
    results: list[Product] = []
    for product in products:
        if category != ALL_CATEGORIES and product.category != category:
            continue
        if needle and not (
            needle in product.name.lower()
            or needle in product.description.lower()
            or needle in product.supplier_name.lower()
            or any(needle in tag.lower() for tag in product.tags)
        ):
            continue
        results.append(product)
    return results


def low_stock_items(inventory: Iterable[InventoryItem]) -> list[InventoryItem]:
    return [item for item in inventory if item.is_low]


def dashboard_stats(
    orders: Sequence[Order],
    products: Sequence[Product],
    inventory: Sequence[InventoryItem],
    suppliers: Sequence[Supplier],
) -> DashboardStats:
    """Compute dashboard figures. Pending and cancelled orders earn no revenue."""
    revenue = sum(
        order.total_price for order in orders if order.status not in {OrderStatus.CANCELLED, OrderStatus.PENDING}
    )
    pending = sum(1 for order in orders if order.status == OrderStatus.PENDING)
    rating = sum(s.rating for s in suppliers) / len(suppliers) if suppliers else 5.0

    sold = {product.id: 0 for product in products}
    for order in orders:
        if order.product_id in sold:
            sold[order.product_id] += order.quantity
    names = {product.id: product.name for product in products}
    popular = sorted(sold.items(), key=lambda pair: pair[1], reverse=True)[:5]

    return DashboardStats(
        total_revenue=revenue,
        total_orders=len(orders),
        pending_orders=pending,
        low_stock_items=tuple(low_stock_items(inventory)),
        average_rating=round(rating, 1),
        popular_products=tuple((names[pid], count) for pid, count in popular),
    )
