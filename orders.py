import logging
from collections import OrderedDict
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from errors import OrderConflict, RecordNotFound
from models import db, CustomerOrder, FoodItem, OrderItem, User

logger = logging.getLogger(__name__)


def find_or_create_user(name, mobile, email, session_user=None):
    # signed-in user first, then first match by mobile, then by email; not committed
    user = None
    if session_user is not None:
        user = db.session.get(User, session_user.id)
    if user is None:
        user = User.query.filter_by(mobile=mobile).order_by(User.id).first()
    if user is None and email:
        user = User.query.filter(func.lower(User.email) == email.lower()).order_by(User.id).first()

    if user is None:
        user = User(name=name, mobile=mobile, email=email)
        db.session.add(user)
    else:
        user.name = name
        user.mobile = mobile
        user.email = email
    return user


def load_orderable_foods(food_ids):
    wanted = set(food_ids)
    foods = FoodItem.query.filter(FoodItem.id.in_(wanted), FoodItem.is_active.is_(True)).all()
    if len(foods) != len(wanted):
        raise RecordNotFound("One or more food items could not be found.")

    sold_out = sorted(f.name for f in foods if f.is_sold_out)
    if sold_out:
        raise OrderConflict(sold_out)
    return {f.id: f for f in foods}


def place_order(request, session_user=None):
    """Returns ``(order, user)``."""
    customer = request.customer
    foods = load_orderable_foods(line.food_item_id for line in request.items)

    try:
        user = find_or_create_user(customer.name, customer.mobile, customer.email, session_user)

        total = Decimal("0.00")
        order = CustomerOrder(
            customer_name=customer.name,
            customer_mobile=customer.mobile,
            customer_email=customer.email,
            user=user,
        )
        for line in request.items:
            unit_price = foods[line.food_item_id].unit_price
            total += unit_price * line.quantity
            order.items.append(OrderItem(
                food_item_id=line.food_item_id,
                quantity=line.quantity,
                price=unit_price,
            ))
        order.total_price = total

        db.session.add(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create order for mobile %s", customer.mobile)
        raise

    logger.info("Order #%s placed by user %s: %d lines, total %s",
                order.id, user.id, len(order.items), order.total_price)
    return order, user


def _with_items(query):
    return query.options(
        selectinload(CustomerOrder.items).selectinload(OrderItem.food_item).selectinload(FoodItem.images)
    )


def get_order(order_id):
    order = _with_items(CustomerOrder.query).filter(CustomerOrder.id == order_id).first()
    if order is None:
        raise RecordNotFound(f"Order #{order_id} not found")
    return order


def list_user_orders(user):
    return (_with_items(CustomerOrder.query)
            .filter(CustomerOrder.user_id == user.id)
            .order_by(CustomerOrder.created_at.desc(), CustomerOrder.id.desc())
            .all())


def list_orders(status=None):
    query = _with_items(CustomerOrder.query).options(selectinload(CustomerOrder.user))
    if status == "pending":
        query = query.filter(CustomerOrder.is_complete.is_(False))
    elif status == "completed":
        query = query.filter(CustomerOrder.is_complete.is_(True))
    return query.order_by(CustomerOrder.created_at.desc(), CustomerOrder.id.desc()).all()


def set_order_complete(order_id, is_complete):
    order = get_order(order_id)
    order.is_complete = is_complete
    db.session.commit()
    logger.info("Order #%s marked %s", order.id, "complete" if is_complete else "pending")
    return order


def pending_summary():
    """Quantity still to prepare per food item across incomplete orders, largest first."""
    rows = (db.session.query(OrderItem.food_item_id, FoodItem.name, OrderItem.quantity)
            .join(CustomerOrder, OrderItem.order_id == CustomerOrder.id)
            .join(FoodItem, OrderItem.food_item_id == FoodItem.id)
            .filter(CustomerOrder.is_complete.is_(False))
            .order_by(OrderItem.id)
            .all())

    summary = OrderedDict()
    for food_item_id, name, quantity in rows:
        entry = summary.setdefault(food_item_id, {"food_item_id": food_item_id, "food_name": name, "quantity": 0})
        entry["quantity"] += quantity
    return sorted(summary.values(), key=lambda e: e["quantity"], reverse=True)
