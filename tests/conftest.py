"""
Test configuration and fixtures for the kitchen storefront
"""

from decimal import Decimal

import pytest

from app import create_app
from models import db, FoodItem, FoodType, Image, Ingredient, MadeWith, User

ADMIN_EMAIL = "admin@kitchen.co.uk"

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test-secret",
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "ADMIN_EMAILS": [ADMIN_EMAIL],
    "LOG_LEVEL": "WARNING",
    "LOG_FILE": None,
    "WHATSAPP_NUMBER": "+44 7542 693682",
    "GOOGLE_CLIENT_ID": "test-client-id",
    "GOOGLE_CLIENT_SECRET": "test-client-secret",
}


@pytest.fixture
def app():
    """Fresh app on an in-memory database for every test"""
    app = create_app(TEST_CONFIG)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Application context for service-level tests that call modules directly"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def add_catalog():
    """Two types, two ingredients and four dishes; returns their ids by name.

    Must be called inside an application context.
    """
    mains = FoodType(name="Mains")
    sweets = FoodType(name="Sweets")
    rice = Ingredient(name="Rice")
    chicken = Ingredient(name="Chicken")
    db.session.add_all([mains, sweets, rice, chicken])
    db.session.flush()

    biryani = FoodItem(name="Biryani", original_price=Decimal("12.00"), discounted_price=Decimal("10.00"),
                       type_id=mains.id, is_featured=True)
    biryani.made_with = [MadeWith(ingredient_id=rice.id, quantity="200g"),
                         MadeWith(ingredient_id=chicken.id, quantity="150g")]
    biryani.images = [Image(path="https://cdn.kitchen.co.uk/biryani-1.jpg"),
                      Image(path="https://cdn.kitchen.co.uk/biryani-2.jpg")]
    samosa = FoodItem(name="Samosa", original_price=Decimal("4.00"), type_id=mains.id)
    kheer = FoodItem(name="Kheer", original_price=Decimal("5.50"), type_id=sweets.id, is_sold_out=True)
    halwa = FoodItem(name="Halwa", original_price=Decimal("6.00"), type_id=sweets.id, is_active=False)
    db.session.add_all([biryani, samosa, kheer, halwa])
    db.session.commit()

    return {
        "mains": mains.id, "sweets": sweets.id, "rice": rice.id, "chicken": chicken.id,
        "biryani": biryani.id, "samosa": samosa.id, "kheer": kheer.id, "halwa": halwa.id,
    }


def add_user(email, name="Test User", mobile="07000000000"):
    user = User(name=name, email=email, mobile=mobile)
    db.session.add(user)
    db.session.commit()
    return user.id


@pytest.fixture
def catalog_ids(app):
    with app.app_context():
        return add_catalog()


@pytest.fixture
def login_as(client):
    """Put a user id into the Flask-Login session cookie"""
    def _login(user_id):
        with client.session_transaction() as sess:
            sess["_user_id"] = str(user_id)
            sess["_fresh"] = True
    return _login


@pytest.fixture
def admin_client(app, client, login_as):
    with app.app_context():
        user_id = add_user(ADMIN_EMAIL, name="Admin")
    login_as(user_id)
    return client
