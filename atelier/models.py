"""Domain models for atelier orders and their document representation."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class DiningMode(str, Enum):
    EMPORTE = "EMPORTE"
    SUR_PLACE = "SUR_PLACE"


class PaymentMethod(str, Enum):
    MOBILE_MONEY = "MOBILE_MONEY"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"


class MobileProvider(str, Enum):
    ORANGE = "ORANGE"
    MTN = "MTN"
    WAVE = "WAVE"


@dataclass(frozen=True)
class PaymentDetails:
    """Recorded payment choice. Cash carries no provider or transaction fields."""

    method: PaymentMethod
    provider: MobileProvider | None = None
    phone_number: str | None = None
    transaction_id: str | None = None

    @classmethod
    def cash(cls) -> PaymentDetails:
        return cls(method=PaymentMethod.CASH_ON_DELIVERY)

    @classmethod
    def mobile_money(cls, provider: MobileProvider, transaction_id: str) -> PaymentDetails:
        return cls(method=PaymentMethod.MOBILE_MONEY, provider=provider, transaction_id=transaction_id)

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"method": self.method.value}
        if self.provider is not None:
            doc["provider"] = self.provider.value
        if self.phone_number is not None:
            doc["phoneNumber"] = self.phone_number
        if self.transaction_id is not None:
            doc["transactionId"] = self.transaction_id
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> PaymentDetails:
        provider = data.get("provider")
        return cls(
            method=PaymentMethod(data["method"]),
            provider=MobileProvider(provider) if provider else None,
            phone_number=data.get("phoneNumber"),
            transaction_id=data.get("transactionId"),
        )


@dataclass(frozen=True)
class Product:
    """A catalog entry. Orders copy its name and price at creation time."""

    id: str
    name: str
    price: int
    category: str
    supplier_id: str = ""
    supplier_name: str = ""
    description: str = ""
    image_url: str = ""
    tags: tuple[str, ...] = ()
    created_at: int = 0
    is_promoted: bool = False

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError("price must be non-negative")

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "supplierId": self.supplier_id,
            "supplierName": self.supplier_name,
            "imageUrl": self.image_url,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "isPromoted": self.is_promoted,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Product:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            price=int(data["price"]),
            category=str(data.get("category", "")),
            supplier_id=str(data.get("supplierId", "")),
            supplier_name=str(data.get("supplierName", "")),
            description=str(data.get("description", "")),
            image_url=str(data.get("imageUrl", "")),
            tags=tuple(str(tag) for tag in data.get("tags", [])),
            created_at=int(data.get("createdAt", 0)),
            is_promoted=bool(data.get("isPromoted", False)),
        )


@dataclass(frozen=True)
class Order:
    """An immutable order record; only ``status`` changes after creation."""

    id: str
    product_id: str
    product_name: str
    quantity: int
    total_price: int
    supplier_id: str
    customer_name: str
    customer_contact: str
    shipping_address: str
    status: OrderStatus = OrderStatus.PENDING
    date: int = 0
    payment_details: PaymentDetails | None = None
    dining_mode: DiningMode | None = None
    # Stored for forward compatibility; never added to total_price.
    shipping_fees: int = 0
    service_fees: int = 0

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be at least 1")

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "totalPrice": self.total_price,
            "shippingFees": self.shipping_fees,
            "serviceFees": self.service_fees,
            "supplierId": self.supplier_id,
            "customerName": self.customer_name,
            "customerContact": self.customer_contact,
            "status": self.status.value,
            "date": self.date,
            "shippingAddress": self.shipping_address,
        }
        if self.payment_details is not None:
            doc["paymentDetails"] = self.payment_details.to_document()
        if self.dining_mode is not None:
            doc["diningMode"] = self.dining_mode.value
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Order:
        payment = data.get("paymentDetails")
        dining_mode = data.get("diningMode")
        return cls(
            id=str(data["id"]),
            product_id=str(data.get("productId", "")),
            product_name=str(data.get("productName", "")),
            quantity=int(data.get("quantity", 1)),
            total_price=int(data.get("totalPrice", 0)),
            supplier_id=str(data.get("supplierId", "")),
            customer_name=str(data.get("customerName", "")),
            customer_contact=str(data.get("customerContact", "")),
            shipping_address=str(data.get("shippingAddress", "")),
            status=OrderStatus(data.get("status", OrderStatus.PENDING.value)),
            date=int(data.get("date", 0)),
            payment_details=PaymentDetails.from_document(payment) if payment else None,
            dining_mode=DiningMode(dining_mode) if dining_mode else None,
            shipping_fees=int(data.get("shippingFees", 0)),
            service_fees=int(data.get("serviceFees", 0)),
        )


@dataclass(frozen=True)
class InventoryItem:
    """A raw material on hand (eggs, flour, sauce...)."""

    id: str
    name: str
    quantity: float
    unit: str
    threshold: float
    updated_at: int = 0

    @property
    def is_low(self) -> bool:
        return self.quantity <= self.threshold

    def to_document(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "threshold": self.threshold,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> InventoryItem:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            quantity=data.get("quantity", 0),
            unit=str(data.get("unit", "")),
            threshold=data.get("threshold", 0),
            updated_at=int(data.get("updatedAt", 0)),
        )


@dataclass(frozen=True)
class Supplier:
    """A supplier or staff account. Credentials are plain values."""

    id: str
    name: str
    rating: float = 5.0
    verified: bool = False
    is_available: bool = True
    category: str = ""
    description: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    password: str = ""
    role: str = ""

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "name": self.name,
            "rating": self.rating,
            "verified": self.verified,
            "isAvailable": self.is_available,
            "category": self.category,
            "description": self.description,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "password": self.password,
        }
        if self.role:
            doc["role"] = self.role
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> Supplier:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            rating=float(data.get("rating", 5.0)),
            verified=bool(data.get("verified", False)),
            is_available=bool(data.get("isAvailable", True)),
            category=str(data.get("category") or ""),
            description=str(data.get("description") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
            address=str(data.get("address") or ""),
            password=str(data.get("password") or ""),
            role=str(data.get("role") or ""),
        )


# Document key -> attribute name, for independent merging over defaults.
_SETTINGS_KEYS = {
    "appName": "app_name",
    "slogan": "slogan",
    "contactEmail": "contact_email",
    "contactPhone": "contact_phone",
    "contactAddress": "contact_address",
    "currency": "currency",
    "defaultShippingFees": "default_shipping_fees",
    "serviceFees": "service_fees",
    "isMaintenanceMode": "is_maintenance_mode",
}


@dataclass(frozen=True)
class AppSettings:
    """Vendor-wide settings stored in the ``Settings/general`` document."""

    app_name: str
    slogan: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    contact_address: str = ""
    currency: str = "FCFA"
    default_shipping_fees: int = 0
    service_fees: int = 0
    is_maintenance_mode: bool = False

    def to_document(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for key, attr in _SETTINGS_KEYS.items()}

    def merged(self, data: dict[str, Any] | None) -> AppSettings:
        """Return these settings with every option present in ``data`` replaced."""
        if not data:
            return self
        values = {attr: data[key] for key, attr in _SETTINGS_KEYS.items() if data.get(key) is not None}
        return replace(self, **values)


@dataclass(frozen=True)
class DashboardStats:
    """Headline figures for the operator dashboard."""

    total_revenue: int
    total_orders: int
    pending_orders: int
    low_stock_items: tuple[InventoryItem, ...]
    average_rating: float
    popular_products: tuple[tuple[str, int], ...] = field(default_factory=tuple)
