"""
Pytest fixtures for posoffice backend tests.

Each test gets its own file-backed SQLite database (threads in the
concurrency tests need a database they can all open), an owner and a
cashier, and helpers for authenticated requests.
"""

from decimal import Decimal

import pytest

from posoffice import create_app
from posoffice.extensions import db
from posoffice.models import Category, Product, Supplier, User
from posoffice.permissions import Role
from posoffice.services import auth_service, session_service

OWNER_PASSWORD = "Owner#12345"
CASHIER_PASSWORD = "Cashier#12345"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost keeps the suite fast; hashing is still real bcrypt."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.sqlite3'}",
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
def session(app):
    return db.session


def _make_user(session, name, email, password, role, is_active=True):
    user = User(
        name=name,
        email=email,
        password_hash=auth_service.hash_password(password),
        role=role.value,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def owner(session):
    return _make_user(session, "Owner", "owner@email.com", OWNER_PASSWORD, Role.OWNER)


@pytest.fixture
def cashier(session):
    return _make_user(session, "Kasir Satu", "kasir1@email.com", CASHIER_PASSWORD, Role.CASHIER)


@pytest.fixture
def other_cashier(session):
    return _make_user(session, "Kasir Dua", "kasir2@email.com", CASHIER_PASSWORD, Role.CASHIER)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(session, user) -> str:
    _, token = session_service.create_session(session, user)
    return token


@pytest.fixture
def owner_headers(session, owner):
    return auth_headers(token_for(session, owner))


@pytest.fixture
def cashier_headers(session, cashier):
    return auth_headers(token_for(session, cashier))


@pytest.fixture
def category(session):
    cat = Category(name="Minuman")
    session.add(cat)
    session.commit()
    return cat


@pytest.fixture
def supplier(session):
    sup = Supplier(name="PT Sumber Makmur", phone_number="+62 812-0000-1111", address="Jl. Merdeka 1")
    session.add(sup)
    session.commit()
    return sup


@pytest.fixture
def make_product(session, category):
    """Factory: make_product(name, selling, purchase, stock=0)."""
    def _make(name="Teh Botol", selling="5000.00", purchase="3500.00", stock=0):
        product = Product(
            category_id=category.id,
            name=name,
            selling_price=Decimal(selling),
            purchase_price=Decimal(purchase),
            stock=stock,
        )
        session.add(product)
        session.commit()
        return product
    return _make


def current_stock(session, product_id: int) -> int:
    """Fresh read from the database, bypassing any cached instance."""
    session.expire_all()
    return session.query(Product.stock).filter(Product.id == product_id).scalar()
