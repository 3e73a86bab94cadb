"""
Tests for the server-rendered storefront and back office pages
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

import app as storefront_app
from models import db, CustomerOrder, FoodItem, FoodType, Ingredient, User
from utils.cart import SESSION_KEY


class Monday(date):
    @classmethod
    def today(cls):
        return cls(2024, 6, 3)


class Saturday(date):
    @classmethod
    def today(cls):
        return cls(2024, 6, 1)


def _cart(client):
    with client.session_transaction() as sess:
        return dict(sess.get(SESSION_KEY, {}))


def _add_weekend_dish(app):
    with app.app_context():
        food = FoodItem(name="Sunday Roast", original_price=Decimal("15.00"), is_weekend_only=True)
        db.session.add(food)
        db.session.commit()
        return food.id


class TestStorefront:
    def test_index_lists_active_dishes(self, client, catalog_ids):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Biryani" in resp.data
        assert b"Samosa" in resp.data
        assert b"Halwa" not in resp.data
        assert "£10.00".encode() in resp.data

    def test_index_type_filter(self, client, catalog_ids):
        resp = client.get(f"/?typeId={catalog_ids['sweets']}")
        assert b"Kheer" in resp.data

    def test_food_detail(self, client, catalog_ids):
        resp = client.get(f"/food/{catalog_ids['biryani']}")
        assert resp.status_code == 200
        assert b"200g" in resp.data

    def test_inactive_food_detail_is_404(self, client, catalog_ids):
        assert client.get(f"/food/{catalog_ids['halwa']}").status_code == 404

    def test_cart_add_set_remove(self, client, catalog_ids):
        samosa = catalog_ids["samosa"]
        client.post(f"/cart/add/{samosa}")
        client.post(f"/cart/add/{samosa}")
        assert _cart(client) == {str(samosa): 2}

        client.post(f"/cart/set/{samosa}", data={"quantity": "5"})
        assert _cart(client) == {str(samosa): 5}

        client.post(f"/cart/set/{samosa}", data={"quantity": "0"})
        assert _cart(client) == {}

        client.post(f"/cart/add/{samosa}")
        client.post(f"/cart/remove/{samosa}")
        assert _cart(client) == {}

    def test_cart_refuses_sold_out_and_inactive(self, client, catalog_ids):
        client.post(f"/cart/add/{catalog_ids['kheer']}")
        client.post(f"/cart/add/{catalog_ids['halwa']}")
        assert _cart(client) == {}

    def test_cart_add_ignores_offsite_next(self, client, catalog_ids):
        resp = client.post(f"/cart/add/{catalog_ids['samosa']}", data={"next": "https://evil.x.com/"})
        assert resp.headers["Location"].endswith("/")
        assert "evil" not in resp.headers["Location"]

    def test_weekend_only_dish_on_weekday(self, app, client, monkeypatch):
        food_id = _add_weekend_dish(app)
        monkeypatch.setattr(storefront_app, "date", Monday)
        client.post(f"/cart/add/{food_id}")
        assert _cart(client) == {}
        assert b"Available Saturday" in client.get("/").data

    def test_set_quantity_cannot_add_new_dish(self, app, client, monkeypatch):
        food_id = _add_weekend_dish(app)
        monkeypatch.setattr(storefront_app, "date", Monday)
        client.post(f"/cart/add/{food_id}")
        client.post(f"/cart/set/{food_id}", data={"quantity": "2"})
        assert _cart(client) == {}

        resp = client.post("/checkout", data={"name": "A", "mobile": "111", "email": "a@x.com"})
        assert "/order-success/" not in resp.headers["Location"]
        with app.app_context():
            assert CustomerOrder.query.count() == 0

    def test_weekend_only_dish_on_saturday(self, app, client, monkeypatch):
        food_id = _add_weekend_dish(app)
        monkeypatch.setattr(storefront_app, "date", Saturday)
        client.post(f"/cart/add/{food_id}")
        assert _cart(client) == {str(food_id): 1}

    def test_checkout(self, app, client, catalog_ids):
        for food in ("biryani", "biryani", "samosa", "samosa"):
            client.post(f"/cart/add/{catalog_ids[food]}")

        resp = client.post("/checkout", data={"name": "A", "mobile": "111", "email": "a@x.com"})
        assert resp.status_code == 302
        assert "/order-success/" in resp.headers["Location"]
        assert _cart(client) == {}

        with app.app_context():
            order = CustomerOrder.query.one()
            assert order.total_price == Decimal("28.00")
            assert len(order.items) == 2
            assert User.query.count() == 1
            order_id = order.id

        page = client.get(f"/order-success/{order_id}")
        assert page.status_code == 200
        assert b"Order Placed Successfully!" in page.data
        assert b"https://wa.me/447542693682?text=" in page.data
        assert b"data:image/png;base64," in page.data

    def test_checkout_invalid_email_keeps_form(self, app, client, catalog_ids):
        client.post(f"/cart/add/{catalog_ids['samosa']}")
        resp = client.post("/checkout", data={"name": "A", "mobile": "111", "email": "nope"})
        assert resp.headers["Location"].endswith("/")

        page = client.get("/")
        assert b'value="nope"' in page.data
        assert _cart(client) == {str(catalog_ids["samosa"]): 1}
        with app.app_context():
            assert CustomerOrder.query.count() == 0

    def test_checkout_sold_out_since_added(self, app, client, catalog_ids):
        client.post(f"/cart/add/{catalog_ids['samosa']}")
        with app.app_context():
            db.session.get(FoodItem, catalog_ids["samosa"]).is_sold_out = True
            db.session.commit()

        client.post("/checkout", data={"name": "A", "mobile": "111", "email": "a@x.com"})
        assert b"Some items are sold out: Samosa" in client.get("/").data

    def test_checkout_empty_cart(self, client):
        resp = client.post("/checkout", data={"name": "A", "mobile": "111", "email": "a@x.com"})
        assert resp.status_code == 302
        assert b"Your cart is empty." in client.get("/").data

    def test_my_orders_requires_sign_in(self, client):
        resp = client.get("/orders")
        assert resp.status_code == 302
        assert "/sign-in" in resp.headers["Location"]


class TestBackOffice:
    def test_dashboard(self, admin_client, catalog_ids):
        resp = admin_client.get("/admin/")
        assert resp.status_code == 200
        assert b"Pending orders" in resp.data

    def test_create_food_from_form(self, app, admin_client, catalog_ids):
        resp = admin_client.post("/admin/foods", data={
            "name": "Lassi",
            "original_price": "3.50",
            "discounted_price": "",
            "type_id": str(catalog_ids["sweets"]),
            "is_featured": "on",
            "ingredient_id": [str(catalog_ids["rice"]), ""],
            "ingredient_quantity": ["1 tbsp", ""],
        })
        assert resp.status_code == 302
        with app.app_context():
            food = FoodItem.query.filter_by(name="Lassi").one()
            assert food.is_featured is True
            assert food.discounted_price is None
            assert [(mw.ingredient_id, mw.quantity) for mw in food.made_with] == [(catalog_ids["rice"], "1 tbsp")]

    def test_create_food_bad_price(self, app, admin_client):
        admin_client.post("/admin/foods", data={"name": "Lassi", "original_price": "3.50", "discounted_price": "abc"})
        with app.app_context():
            assert FoodItem.query.filter_by(name="Lassi").count() == 0

    def test_edit_food(self, app, admin_client, catalog_ids):
        assert admin_client.get(f"/admin/foods/{catalog_ids['biryani']}/edit").status_code == 200
        admin_client.post(f"/admin/foods/{catalog_ids['biryani']}/edit", data={
            "name": "Biryani",
            "original_price": "12.00",
            "discounted_price": "0",
            "type_id": str(catalog_ids["mains"]),
            "ingredient_id": [str(catalog_ids["chicken"])],
            "ingredient_quantity": ["250g"],
        })
        with app.app_context():
            food = db.session.get(FoodItem, catalog_ids["biryani"])
            assert food.discounted_price is None
            assert food.is_featured is False
            assert [mw.quantity for mw in food.made_with] == ["250g"]

    def test_toggle_status_and_delete(self, app, admin_client, catalog_ids):
        samosa = catalog_ids["samosa"]
        admin_client.post(f"/admin/foods/{samosa}/status", data={"field": "is_sold_out", "value": "true"})
        admin_client.post(f"/admin/foods/{samosa}/delete")
        with app.app_context():
            food = db.session.get(FoodItem, samosa)
            assert food.is_sold_out is True
            assert food.is_active is False

    def test_types_page(self, app, admin_client, catalog_ids):
        admin_client.post("/admin/types", data={"name": "Drinks"})
        page = admin_client.get("/admin/types")
        assert b"Drinks" in page.data

        admin_client.post(f"/admin/types/{catalog_ids['mains']}/delete")
        page = admin_client.get("/admin/types")
        assert b"still used" in page.data
        with app.app_context():
            assert db.session.get(FoodType, catalog_ids["mains"]) is not None

    def test_ingredients_page_rename(self, app, admin_client, catalog_ids):
        admin_client.post(f"/admin/ingredients/{catalog_ids['rice']}/rename", data={"name": "Basmati"})
        with app.app_context():
            assert db.session.get(Ingredient, catalog_ids["rice"]).name == "Basmati"

    def test_images_page(self, app, admin_client, catalog_ids):
        admin_client.post(f"/admin/images/{catalog_ids['samosa']}/add",
                          data={"image_url": "https://cdn.kitchen.co.uk/samosa.jpg"})
        page = admin_client.get("/admin/images")
        assert b"https://cdn.kitchen.co.uk/samosa.jpg" in page.data

    def test_orders_pages(self, app, admin_client, catalog_ids):
        anonymous = app.test_client()
        anonymous.post("/api/orders", json={
            "customer": {"name": "A", "mobile": "111", "email": "a@x.com"},
            "items": [{"foodItemId": catalog_ids["samosa"], "quantity": 3}],
        })
        with app.app_context():
            order_id = CustomerOrder.query.one().id

        assert b"Samosa" in admin_client.get("/admin/pending-summary").data
        admin_client.post(f"/admin/orders/{order_id}/toggle", data={"status": "pending"})
        with app.app_context():
            assert db.session.get(CustomerOrder, order_id).is_complete is True
        assert b"Mark pending" in admin_client.get("/admin/orders?status=completed").data
        assert b"Nothing pending." in admin_client.get("/admin/pending-summary").data


class TestShareOrderCommand:
    @pytest.fixture
    def order_id(self, app, catalog_ids):
        client = app.test_client()
        client.post("/api/orders", json={
            "customer": {"name": "A", "mobile": "111", "email": "a@x.com"},
            "items": [{"foodItemId": catalog_ids["samosa"], "quantity": 1}],
        })
        with app.app_context():
            return CustomerOrder.query.one().id

    def test_share_now(self, app, order_id):
        with patch("webbrowser.open") as mock_open:
            result = app.test_cli_runner().invoke(args=["share-order", str(order_id), "--now"])
        assert result.exit_code == 0, result.output
        assert "Here are my order details" in result.output
        mock_open.assert_called_once()
        assert mock_open.call_args[0][0].startswith("https://wa.me/447542693682?text=")
