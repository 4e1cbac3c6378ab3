"""
Pytest fixtures for canteen ledger tests.

Provides an in-memory application, per-test table wipe, and factories for
customers and products. Opening balances are written through the ledger so
that every customer starts with balance == sum(non-voided amounts).
"""

import pytest

from canteen import create_app
from canteen.extensions import db
from canteen.models import Customer, CustomerType, Product
from canteen.services import ledger_service, settings_service


COFFEE_OPTIONS = [
    {
        "id": "size",
        "name": "Size",
        "required": True,
        "multiple": False,
        "choices": [
            {"id": "s", "label": "Small", "priceDelta": 0},
            {"id": "l", "label": "Large", "priceDelta": "0.50"},
        ],
    },
    {
        "id": "extras",
        "name": "Extras",
        "required": False,
        "multiple": True,
        "choices": [
            {"id": "milk", "label": "Milk", "priceDelta": 0.2},
            {"id": "syrup", "label": "Syrup", "priceDelta": 0.3},
        ],
    },
]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    settings_service.get_app_settings()
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: create a customer and deposit an opening balance."""
    def _make(customer_id="1001", balance_cents=2500, name="Test Customer", **fields):
        customer = Customer(customer_id=customer_id, name=name, balance_cents=0, **fields)
        db_session.add(customer)
        db_session.commit()
        if balance_cents:
            ledger_service.process_deposit(customer_id, balance_cents, note="Opening balance")
        return customer
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: create an active product."""
    def _make(product_id="P1", price_cents=250, **fields):
        fields.setdefault("name", f"Product {product_id}")
        fields.setdefault("active", True)
        product = Product(product_id=product_id, price_cents=price_cents, **fields)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer()


@pytest.fixture(scope='function')
def product(make_product):
    return make_product(barcode="4000000000017")


@pytest.fixture(scope='function')
def coffee(make_product):
    return make_product("COFFEE", 250, name="Coffee", options=COFFEE_OPTIONS)


@pytest.fixture(scope='function')
def staff_type(db_session):
    customer_type = CustomerType(name="Staff", discount_percent_bps=1000, discount_flat_cents=50)
    db_session.add(customer_type)
    db_session.commit()
    return customer_type


@pytest.fixture(scope='function')
def balance_of(db_session):
    """Fresh read of a customer's stored balance."""
    def _read(customer_id: str) -> int:
        db_session.expire_all()
        return db_session.query(Customer).filter_by(customer_id=customer_id).one().balance_cents
    return _read
