from flask import jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import InternalServerError

import catalog
import orders
from api import bp
from api.schemas import FoodOut, OrderOut, PlacedOrderOut, PlaceOrderRequest, dump, dump_many, parse
from auth import require_user, session_user


@bp.route("/foods")
def foods():
    type_id = catalog.parse_type_filter(request.args.get("typeId"))
    featured_only = request.args.get("featured") == "true"
    return jsonify(dump_many(FoodOut, catalog.list_active_foods(type_id, featured_only)))


@bp.route("/orders", methods=["POST"])
def create_order():
    payload = parse(PlaceOrderRequest, request.get_json(silent=True))
    try:
        order, user = orders.place_order(payload, session_user())
    except SQLAlchemyError:
        raise InternalServerError("Failed to create order")
    return jsonify(dump(PlacedOrderOut, {"user": user, "order": order})), 201


@bp.route("/user/orders")
def my_orders():
    user = require_user()
    return jsonify(dump_many(OrderOut, orders.list_user_orders(user)))
