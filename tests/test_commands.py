from dataclasses import replace

import pytest

from atelier import commands
from atelier.data import DEFAULT_SETTINGS, SEED_INVENTORY, SEED_PRODUCTS
from atelier.models import DiningMode, InventoryItem, Order, OrderStatus, PaymentMethod, Supplier
from atelier.persistence import DocumentNotFoundError
from atelier.realtime import INVENTORY, ORDERS, PRODUCTS, SETTINGS, SETTINGS_DOC_ID, SUPPLIERS


def test_admin_credentials():
    assert commands.check_admin_credentials("admin", "admin123")
    assert not commands.check_admin_credentials("admin", "nope")
    assert not commands.check_admin_credentials("", "")


def test_supplier_login_by_email_or_name():
    awa = Supplier(id="s1", name="Chez Awa", email="awa@example.com", password="secret")

    assert commands.authenticate_supplier([awa], "awa@example.com", "secret") == awa
    assert commands.authenticate_supplier([awa], "Chez Awa", "secret") == awa
    assert commands.authenticate_supplier([awa], "Chez Awa", "wrong") is None


@pytest.mark.asyncio
async def test_create_order_uses_order_id_and_status_update(store, make_order):
    await commands.create_order(store, make_order("ord-1"))
    await commands.update_order_status(store, "ord-1", OrderStatus.CONFIRMED)

    doc = await store.get(ORDERS, "ord-1")
    assert doc["status"] == "CONFIRMED"
    assert doc["totalPrice"] == 4500
    assert doc["diningMode"] == "SUR_PLACE"
    assert doc["paymentDetails"] == {"method": "CASH_ON_DELIVERY"}
    restored = Order.from_document(doc)
    assert restored.dining_mode == DiningMode.SUR_PLACE
    assert restored.payment_details.method == PaymentMethod.CASH_ON_DELIVERY


@pytest.mark.asyncio
async def test_status_update_of_missing_order_raises(store):
    with pytest.raises(DocumentNotFoundError):
        await commands.update_order_status(store, "ghost", OrderStatus.CONFIRMED)


@pytest.mark.asyncio
async def test_adjust_inventory_never_goes_negative(store):
    item = InventoryItem(id="eggs", name="Oeufs", quantity=1, unit="plateaux", threshold=4)
    await commands.add_inventory_item(store, item)

    await commands.adjust_inventory_quantity(store, item, -3)

    doc = await store.get(INVENTORY, "eggs")
    assert doc["quantity"] == 0
    assert doc["updatedAt"] > 0


@pytest.mark.asyncio
async def test_product_promotion_toggle(store, product):
    product_id = await commands.add_product(store, product)
    assert product_id == "p1"

    await commands.toggle_product_promotion(store, product)

    doc = await store.get(PRODUCTS, "p1")
    assert doc["isPromoted"] is True
    assert doc["createdAt"] > 0


@pytest.mark.asyncio
async def test_register_supplier_starts_unverified(store):
    supplier = await commands.register_supplier(store, "", "pw", email="new@example.com")

    doc = await store.get(SUPPLIERS, supplier.id)
    assert doc["name"] == "Nouvelle Entreprise"
    assert doc["verified"] is False

    await commands.toggle_supplier_verification(store, supplier)
    assert (await store.get(SUPPLIERS, supplier.id))["verified"] is True


@pytest.mark.asyncio
async def test_seed_demo_data(store):
    counts = await commands.seed_demo_data(store)

    assert counts == (len(SEED_PRODUCTS), len(SEED_INVENTORY))
    settings = await store.get(SETTINGS, SETTINGS_DOC_ID)
    assert settings["appName"] == DEFAULT_SETTINGS.app_name


@pytest.mark.asyncio
async def test_update_and_delete_product(store, product):
    await commands.add_product(store, product)

    await commands.update_product(store, replace(product, price=1800, tags=("pâtes",)))
    doc = await store.get(PRODUCTS, "p1")
    assert doc["price"] == 1800
    assert doc["tags"] == ["pâtes"]

    await commands.delete_product(store, "p1")
    assert await store.get(PRODUCTS, "p1") is None


@pytest.mark.asyncio
async def test_delete_inventory_item(store):
    item = InventoryItem(id="flour", name="Farine", quantity=10, unit="kg", threshold=2)
    await commands.add_inventory_item(store, item)

    await commands.delete_inventory_item(store, "flour")

    assert await store.get(INVENTORY, "flour") is None


@pytest.mark.asyncio
async def test_staff_accounts_are_verified_and_can_log_in(store):
    staff_id = await commands.add_staff_user(store, "Moussa", "m@example.com", "pw", "Caissier")

    doc = await store.get(SUPPLIERS, staff_id)
    assert doc["verified"] is True
    assert doc["role"] == "Caissier"
    staff = Supplier.from_document(doc)
    assert commands.authenticate_supplier([staff], "m@example.com", "pw") == staff


@pytest.mark.asyncio
async def test_update_settings_merges_into_existing_document(store):
    await store.set(SETTINGS, SETTINGS_DOC_ID, {"appName": "Chez Awa", "legacyFlag": True})

    await commands.update_settings(store, replace(DEFAULT_SETTINGS, is_maintenance_mode=True))

    doc = await store.get(SETTINGS, SETTINGS_DOC_ID)
    assert doc["isMaintenanceMode"] is True
    assert doc["legacyFlag"] is True
