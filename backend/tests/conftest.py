"""
Pytest fixtures for FurniPOS backend tests.

Every test gets a fresh in-memory database, the four role users, two
warehouses, today's exchange rate and one stocked product.
"""

from decimal import Decimal

import pytest
from furnipos import create_app
from furnipos.extensions import db
from furnipos.models import Customer, ExchangeRate, Product, Warehouse
from furnipos.permissions import Role
from furnipos.services.auth_service import create_user
from furnipos.services.register_service import ensure_register_balances
from furnipos.services import notification_service, stock_service
from furnipos.time_utils import today


PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        ensure_register_balances()
        db.session.commit()
        yield app
        notification_service.clear_subscribers()
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def owner(db_session):
    return create_user(username="owner", password=PASSWORD, full_name="Aziz Owner", role=Role.OWNER)


@pytest.fixture(scope='function')
def sales_cashier(db_session):
    return create_user(username="sales", password=PASSWORD, full_name="Dilnoza Sales", role=Role.CASHIER_SALES)


@pytest.fixture(scope='function')
def service_cashier(db_session):
    return create_user(username="service", password=PASSWORD, full_name="Jasur Service", role=Role.CASHIER_SERVICE)


@pytest.fixture(scope='function')
def master_user(db_session):
    return create_user(username="master", password=PASSWORD, full_name="Bobur Master", role=Role.MASTER)


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, "owner", PASSWORD))


@pytest.fixture(scope='function')
def sales_headers(client, sales_cashier):
    return auth_headers(get_auth_token(client, "sales", PASSWORD))


@pytest.fixture(scope='function')
def service_headers(client, service_cashier):
    return auth_headers(get_auth_token(client, "service", PASSWORD))


@pytest.fixture(scope='function')
def master_headers(client, master_user):
    return auth_headers(get_auth_token(client, "master", PASSWORD))


@pytest.fixture(scope='function')
def warehouse(db_session):
    warehouse = Warehouse(name="Main Warehouse")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def second_warehouse(db_session):
    warehouse = Warehouse(name="Chilonzor Showroom")
    db_session.add(warehouse)
    db_session.commit()
    return warehouse


@pytest.fixture(scope='function')
def rate(db_session, owner):
    rate = ExchangeRate(rate_date=today(), rate=Decimal("12650.00"), set_by_user_id=owner.id)
    db_session.add(rate)
    db_session.commit()
    return rate


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(full_name="Malika Yusupova", phone="+998901234567")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def product(db_session):
    """MDF board: sells at 50,000, floor 45,000, no low-stock alert."""
    product = Product(
        sku="000101",
        name="MDF Board 18mm",
        sell_price_uzs=50000,
        sell_price_usd_cents=400,
        min_price_uzs=45000,
        cost_price_uzs=30000,
        min_stock_alert=0,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def stocked_product(db_session, product, warehouse):
    """The MDF board with 10 on hand in the main warehouse."""
    put_stock(product, warehouse, 10)
    return product


def put_stock(product, warehouse, quantity: int) -> None:
    """Helper to set a stock level directly."""
    stock_service.set_stock_quantity(product.id, warehouse.id, quantity)
    db.session.commit()


def stock_of(product, warehouse) -> int:
    """Helper to read the live stock level."""
    return stock_service.get_quantity(product.id, warehouse.id)


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
