"""Pytest fixtures for eshop tests."""

import os

# Settings are read at import time, so the environment must be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["APP_ENV"] = "production"
os.environ["DEBUG"] = "false"
os.environ["EMAIL_HOST"] = ""

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from config.database import Base, SessionLocal, engine, get_db  # noqa: E402
from common.security import create_token, hash_password  # noqa: E402
from main import app  # noqa: E402
from modules.catalog.models import Category, Product  # noqa: E402
from modules.user.models import User, UserRole  # noqa: E402

API = "/api/v1"
PASSWORD = "secret123"


@pytest.fixture
def db():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    """Test client whose requests share the test's session."""
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="shopper@example.com", role=UserRole.USER, name="Test Shopper", password=PASSWORD):
        user = User(name=name, email=email, role=role.value, password_hash=hash_password(password))
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def shopper(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", role=UserRole.ADMIN, name="Site Admin")


@pytest.fixture
def manager(make_user):
    return make_user(email="manager@example.com", role=UserRole.MANAGER, name="Shop Manager")


@pytest.fixture
def auth_headers():
    """Bearer header for a user."""
    def _headers(user):
        return {"Authorization": f"Bearer {create_token(user.id)}"}
    return _headers


@pytest.fixture
def category(db):
    cat = Category(name="Phones", slug="phones")
    db.add(cat)
    db.commit()
    return cat


@pytest.fixture
def make_product(db, category):
    def _make(title="Phone", price="100.00", quantity=10, **extra):
        product = Product(
            title=title,
            description=f"{title} description",
            price=Decimal(price),
            quantity=quantity,
            category_id=category.id,
            **extra,
        )
        db.add(product)
        db.commit()
        return product
    return _make
