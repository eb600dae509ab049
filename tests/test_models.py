import pytest

from atelier.data import DEFAULT_SETTINGS
from atelier.models import (
    AppSettings,
    DiningMode,
    InventoryItem,
    MobileProvider,
    Order,
    OrderStatus,
    PaymentDetails,
    PaymentMethod,
    Product,
)


def test_order_document_uses_wire_keys(make_order):
    doc = make_order().to_document()

    assert doc["totalPrice"] == 4500
    assert doc["customerName"] == "Awa"
    assert doc["shippingAddress"] == "Table 4"
    assert doc["diningMode"] == "SUR_PLACE"
    assert doc["status"] == "PENDING"
    assert "id" not in doc


def test_cash_payment_has_no_provider_or_transaction(make_order):
    doc = make_order().to_document()

    assert doc["paymentDetails"] == {"method": "CASH_ON_DELIVERY"}
    restored = Order.from_document({"id": "o1", **doc})
    assert restored.payment_details == PaymentDetails.cash()
    assert restored.dining_mode == DiningMode.SUR_PLACE


def test_mobile_money_payment_keeps_provider_and_transaction():
    payment = PaymentDetails.mobile_money(MobileProvider.WAVE, "TXN-42")
    doc = payment.to_document()

    assert doc == {"method": "MOBILE_MONEY", "provider": "WAVE", "transactionId": "TXN-42"}
    assert PaymentDetails.from_document(doc).method == PaymentMethod.MOBILE_MONEY


def test_order_without_optional_fields_reads_defaults():
    order = Order.from_document({"id": "legacy", "productName": "Jus", "quantity": 2, "totalPrice": 2000})

    assert order.status == OrderStatus.PENDING
    assert order.payment_details is None
    assert order.dining_mode is None


def test_order_rejects_zero_quantity(make_order):
    with pytest.raises(ValueError):
        make_order(quantity=0)


def test_product_rejects_negative_price():
    with pytest.raises(ValueError):
        Product(id="p", name="Bad", price=-1, category="X")


def test_inventory_low_at_threshold():
    assert InventoryItem(id="i", name="Oeufs", quantity=4, unit="plateaux", threshold=4).is_low
    assert not InventoryItem(id="i", name="Oeufs", quantity=5, unit="plateaux", threshold=4).is_low


def test_settings_merge_only_replaces_present_keys():
    merged = DEFAULT_SETTINGS.merged({"appName": "Chez Awa", "currency": None, "isMaintenanceMode": True})

    assert merged.app_name == "Chez Awa"
    assert merged.currency == DEFAULT_SETTINGS.currency
    assert merged.is_maintenance_mode is True
    assert merged.slogan == DEFAULT_SETTINGS.slogan


def test_settings_merge_of_nothing_is_identity():
    settings = AppSettings(app_name="X")
    assert settings.merged(None) is settings
    assert settings.merged({}) is settings
