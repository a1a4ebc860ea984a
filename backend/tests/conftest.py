"""
Pytest fixtures for marketledger backend tests.

Provides the test app (in-memory SQLite), per-test table cleanup, seeded
roles/permissions, user fixtures and auth header helpers.
"""

from decimal import Decimal

import pytest

from marketledger import create_app
from marketledger.extensions import db
from marketledger.models import PaymentMethod, Product
from marketledger.services import permission_service, ledger_service, subscription_service
from marketledger.services.auth_service import create_user, create_default_roles
from marketledger.services.ledger_service import ENTRY_ADJUSTMENT


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'EMAIL_DISPATCH_URL': None,
        'EMAIL_DISPATCH_TOKEN': None,
    })

    ctx = app.app_context()
    ctx.push()
    db.create_all()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Empty every table before each test; schema is kept."""
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    permission_service.clear_permission_cache()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    create_default_roles()
    permission_service.initialize_permissions()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def admin_user(setup_roles):
    return create_user("admin@example.com", PASSWORD, full_name="Admin", role_name="admin")


@pytest.fixture(scope='function')
def super_admin(setup_roles):
    return create_user("root@example.com", PASSWORD, full_name="Root", is_super_admin=True)


@pytest.fixture(scope='function')
def seller(setup_roles):
    user = create_user("seller@example.com", PASSWORD, full_name="Seller One", role_name="seller")
    subscription_service.ensure_subscription(user.id)
    return user


@pytest.fixture(scope='function')
def other_seller(setup_roles):
    user = create_user("seller2@example.com", PASSWORD, full_name="Seller Two", role_name="seller")
    subscription_service.ensure_subscription(user.id)
    return user


@pytest.fixture(scope='function')
def customer(setup_roles):
    return create_user("customer@example.com", PASSWORD, full_name="Customer", role_name="customer")


@pytest.fixture(scope='function')
def support_agent(setup_roles):
    return create_user("support@example.com", PASSWORD, full_name="Support", role_name="support_agent")


@pytest.fixture(scope='function')
def payment_method(db_session):
    method = PaymentMethod(method_name="JazzCash", account_name="Market Ltd", account_number="03001234567")
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def product(seller, db_session):
    item = Product(seller_id=seller.id, title="Lawn Suit", price=Decimal("1000.00"), stock_count=25)
    db_session.add(item)
    db_session.commit()
    return item


def fund_wallet(seller_id: int, amount) -> None:
    """Credit a seller wallet directly through the ledger."""
    ledger_service.post_entry(
        seller_id=seller_id,
        transaction_type=ENTRY_ADJUSTMENT,
        net_amount=Decimal(str(amount)),
        description="Test funding",
    )
    db.session.commit()


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def seller_headers(client, seller):
    return auth_headers(get_auth_token(client, seller.email))


@pytest.fixture(scope='function')
def customer_headers(client, customer):
    return auth_headers(get_auth_token(client, customer.email))


@pytest.fixture(scope='function')
def support_headers(client, support_agent):
    return auth_headers(get_auth_token(client, support_agent.email))
