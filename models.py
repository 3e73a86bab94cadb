import sqlite3
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with FK enforcement off; type/ingredient deletes rely on it
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120))
    mobile = db.Column(db.String(30), index=True)
    email = db.Column(db.String(120), unique=True)
    google_id = db.Column(db.String(64), unique=True)  # People API resource name
    last_logged_in = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = db.relationship("CustomerOrder", back_populates="user", lazy=True)


class FoodType(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Ingredient(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class FoodItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text)
    original_price = db.Column(db.Numeric(10, 2), nullable=False)
    discounted_price = db.Column(db.Numeric(10, 2))
    type_id = db.Column(db.Integer, db.ForeignKey("food_type.id", ondelete="RESTRICT"))
    is_featured = db.Column(db.Boolean, default=False, nullable=False)
    is_sold_out = db.Column(db.Boolean, default=False, nullable=False)
    is_weekend_only = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)  # False = soft deleted
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # no backref on FoodType: deleting a referenced type must hit the FK
    type = db.relationship("FoodType", lazy="joined")
    made_with = db.relationship(
        "MadeWith", back_populates="food_item", cascade="all, delete-orphan",
        order_by="MadeWith.id", lazy=True,
    )
    images = db.relationship(
        "Image", back_populates="food_item", cascade="all, delete-orphan",
        order_by="Image.id", lazy=True,
    )

    @property
    def unit_price(self):
        """Price a customer pays right now: the discount when there is one."""
        if self.discounted_price is not None:
            return self.discounted_price
        return self.original_price

    @property
    def default_image(self):
        return self.images[0] if self.images else None

    def is_orderable_on(self, day):
        if not self.is_active or self.is_sold_out:
            return False
        return not self.is_weekend_only or day.weekday() >= 5


class MadeWith(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    food_item_id = db.Column(db.Integer, db.ForeignKey("food_item.id"), nullable=False)
    ingredient_id = db.Column(
        db.Integer, db.ForeignKey("ingredient.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = db.Column(db.String(50), nullable=False)  # free text, e.g. "200g"

    food_item = db.relationship("FoodItem", back_populates="made_with")
    ingredient = db.relationship("Ingredient", lazy="joined")


class Image(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    food_item_id = db.Column(db.Integer, db.ForeignKey("food_item.id"), nullable=False)
    path = db.Column(db.String(500), nullable=False)

    food_item = db.relationship("FoodItem", back_populates="images")


class CustomerOrder(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    # contact snapshot; stays as typed even if the user edits their profile later
    customer_name = db.Column(db.String(120), nullable=False)
    customer_mobile = db.Column(db.String(30), nullable=False)
    customer_email = db.Column(db.String(120))
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    is_complete = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)

    user = db.relationship("User", back_populates="orders")
    items = db.relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.id", lazy=True,
    )


class OrderItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("customer_order.id"), nullable=False)
    food_item_id = db.Column(db.Integer, db.ForeignKey("food_item.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)  # unit price at order time

    order = db.relationship("CustomerOrder", back_populates="items")
    food_item = db.relationship("FoodItem", foreign_keys=[food_item_id])
