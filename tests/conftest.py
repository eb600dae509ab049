import pytest

from atelier.models import DiningMode, Order, OrderStatus, PaymentDetails, Product
from atelier.persistence import DocumentStore


@pytest.fixture
def store(tmp_path):
    store = DocumentStore(tmp_path / "atelier.db")
    store.bootstrap_schema()
    yield store
    store.close()


@pytest.fixture
def product():
    return Product(id="p1", name="Spaghetti Bolognaise", price=1500, category="Pâtes", supplier_id="s1")


@pytest.fixture
def make_order():
    def build(order_id="o1", status=OrderStatus.PENDING, total=4500, quantity=3, date=1000, product_id="p1"):
        return Order(
            id=order_id,
            product_id=product_id,
            product_name="Spaghetti Bolognaise",
            quantity=quantity,
            total_price=total,
            supplier_id="s1",
            customer_name="Awa",
            customer_contact="0700000000",
            shipping_address="Table 4",
            status=status,
            date=date,
            payment_details=PaymentDetails.cash(),
            dining_mode=DiningMode.SUR_PLACE,
        )

    return build


class FakePreferences:
    def __init__(self, values=None):
        self.values = dict(values or {})

    def get_preference(self, key, default=None):
        return self.values.get(key, default)

    def set_preference(self, key, value):
        self.values[key] = value


class ManualClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def preferences():
    return FakePreferences()


@pytest.fixture
def clock():
    return ManualClock()
