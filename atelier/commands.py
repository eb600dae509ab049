"""Writes against the live store, plus the plaintext credential checks."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from atelier.config import ADMIN_PASSWORD, ADMIN_USERNAME
from atelier.data import DEFAULT_SETTINGS, SEED_INVENTORY, SEED_PRODUCTS
from atelier.models import AppSettings, InventoryItem, Order, OrderStatus, Product, Supplier, now_ms
from atelier.persistence import DocumentStore, StoreError
from atelier.realtime import INVENTORY, ORDERS, PRODUCTS, SETTINGS, SETTINGS_DOC_ID, SUPPLIERS

logger = logging.getLogger(__name__)


# Orders


async def create_order(store: DocumentStore, order: Order) -> None:
    """Persist a new order under its own id. Raises StoreError on failure."""
    try:
        await store.add(ORDERS, order.to_document(), doc_id=order.id)
    except StoreError as exc:
        logger.error("order creation failed id=%s: %s", order.id, exc)
        raise
    logger.info("order created id=%s total=%s", order.id, order.total_price)


async def update_order_status(store: DocumentStore, order_id: str, status: OrderStatus) -> None:
    try:
        await store.update(ORDERS, order_id, {"status": status.value})
    except StoreError as exc:
        logger.error("status update failed id=%s status=%s: %s", order_id, status.value, exc)
        raise
    logger.info("order %s -> %s", order_id, status.value)


# Catalog


async def add_product(store: DocumentStore, product: Product) -> str:
    if not product.created_at:
        product = replace(product, created_at=now_ms())
    try:
        return await store.add(PRODUCTS, product.to_document(), doc_id=product.id or None)
    except StoreError as exc:
        logger.error("product creation failed name=%s: %s", product.name, exc)
        raise


async def update_product(store: DocumentStore, product: Product) -> None:
    try:
        await store.update(PRODUCTS, product.id, product.to_document())
    except StoreError as exc:
        logger.error("product update failed id=%s: %s", product.id, exc)
        raise


async def delete_product(store: DocumentStore, product_id: str) -> None:
    try:
        await store.delete(PRODUCTS, product_id)
    except StoreError as exc:
        logger.error("product deletion failed id=%s: %s", product_id, exc)
        raise


async def toggle_product_promotion(store: DocumentStore, product: Product) -> None:
    try:
        await store.update(PRODUCTS, product.id, {"isPromoted": not product.is_promoted})
    except StoreError as exc:
        logger.error("promotion toggle failed id=%s: %s", product.id, exc)
        raise


# Suppliers and staff


async def register_supplier(
    store: DocumentStore,
    name: str,
    password: str,
    *,
    email: str = "",
    phone: str = "",
    address: str = "",
    category: str = "",
    description: str = "",
) -> Supplier:
    """Create an unverified supplier account and return it."""
    supplier = Supplier(
        id="",
        name=name or "Nouvelle Entreprise",
        rating=5.0,
        verified=False,
        is_available=True,
        category=category or "Ventes",
        description=description,
        email=email,
        phone=phone,
        address=address,
        password=password,
    )
    try:
        doc_id = await store.add(SUPPLIERS, supplier.to_document())
    except StoreError as exc:
        logger.error("supplier registration failed name=%s: %s", name, exc)
        raise
    return replace(supplier, id=doc_id)


async def add_staff_user(
    store: DocumentStore, name: str, email: str, password: str, role: str, phone: str = "", address: str = ""
) -> str:
    """Create a verified staff account."""
    staff = Supplier(
        id="",
        name=name,
        rating=5.0,
        verified=True,
        is_available=True,
        category="Personnel",
        email=email,
        phone=phone,
        address=address,
        password=password,
        role=role,
    )
    try:
        return await store.add(SUPPLIERS, staff.to_document())
    except StoreError as exc:
        logger.error("staff creation failed name=%s: %s", name, exc)
        raise


async def toggle_supplier_verification(store: DocumentStore, supplier: Supplier) -> None:
    try:
        await store.update(SUPPLIERS, supplier.id, {"verified": not supplier.verified})
    except StoreError as exc:
        logger.error("verification toggle failed id=%s: %s", supplier.id, exc)
        raise


# Inventory


async def add_inventory_item(store: DocumentStore, item: InventoryItem) -> str:
    item = replace(item, updated_at=now_ms())
    try:
        return await store.add(INVENTORY, item.to_document(), doc_id=item.id or None)
    except StoreError as exc:
        logger.error("stock creation failed name=%s: %s", item.name, exc)
        raise


async def update_inventory_item(store: DocumentStore, item: InventoryItem) -> None:
    item = replace(item, updated_at=now_ms())
    try:
        await store.update(INVENTORY, item.id, item.to_document())
    except StoreError as exc:
        logger.error("stock update failed id=%s: %s", item.id, exc)
        raise


async def adjust_inventory_quantity(store: DocumentStore, item: InventoryItem, delta: float) -> None:
    """Add ``delta`` to the quantity on hand, never going below zero."""
    await update_inventory_item(store, replace(item, quantity=max(0, item.quantity + delta)))


async def delete_inventory_item(store: DocumentStore, item_id: str) -> None:
    try:
        await store.delete(INVENTORY, item_id)
    except StoreError as exc:
        logger.error("stock deletion failed id=%s: %s", item_id, exc)
        raise


# Settings


async def update_settings(store: DocumentStore, settings: AppSettings) -> None:
    try:
        await store.set(SETTINGS, SETTINGS_DOC_ID, settings.to_document(), merge=True)
    except StoreError as exc:
        logger.error("settings update failed: %s", exc)
        raise


# Credential checks (plaintext)


def check_admin_credentials(username: str, password: str) -> bool:
    return username == ADMIN_USERNAME and password == ADMIN_PASSWORD


def authenticate_supplier(suppliers: Iterable[Supplier], login: str, password: str) -> Supplier | None:
    """Find the account whose email or name matches ``login`` and whose password matches."""
    for supplier in suppliers:
        if login in {supplier.email, supplier.name} and supplier.password == password:
            return supplier
    return None


# Demo data


async def seed_demo_data(store: DocumentStore) -> tuple[int, int]:
    """Write the demo catalog, stock and default settings. Returns (products, items) added."""
    started = now_ms()
    for offset, doc in enumerate(SEED_PRODUCTS):
        # Newest-first listing keeps the seed order.
        await add_product(store, Product.from_document({"id": "", "createdAt": started - offset, **doc}))
    for doc in SEED_INVENTORY:
        await add_inventory_item(store, InventoryItem.from_document({"id": "", **doc}))
    await update_settings(store, DEFAULT_SETTINGS)
    logger.info("seeded %d products and %d stock items", len(SEED_PRODUCTS), len(SEED_INVENTORY))
    return len(SEED_PRODUCTS), len(SEED_INVENTORY)
