"""
Back office JSON endpoints. Each request is checked for an admin session
before anything else happens.
"""

from flask import jsonify, request

import catalog
import orders
from api import bp
from api.schemas import (
    AdminOrderOut, FoodCreate, FoodOut, FoodStatusUpdate, FoodTypeOut, FoodUpdate, ImageIn,
    ImageOut, IngredientOut, NameIn, OrderOut, OrderStatusUpdate, PendingSummaryOut,
    dump, dump_many, parse,
)
from auth import require_admin


@bp.before_request
def _admin_only():
    if request.path.startswith("/api/admin"):
        require_admin()


def _body(model_cls):
    return parse(model_cls, request.get_json(silent=True))


# ---- food items ----

@bp.route("/admin/foods", methods=["GET"])
def admin_list_foods():
    return jsonify(dump_many(FoodOut, catalog.list_foods()))


@bp.route("/admin/foods", methods=["POST"])
def admin_create_food():
    food = catalog.create_food(_body(FoodCreate))
    return jsonify(dump(FoodOut, catalog.get_food(food.id))), 201


@bp.route("/admin/foods/<int:food_id>", methods=["GET"])
def admin_get_food(food_id):
    return jsonify(dump(FoodOut, catalog.get_food(food_id)))


@bp.route("/admin/foods/<int:food_id>", methods=["PUT"])
def admin_update_food(food_id):
    data = _body(FoodUpdate)
    return jsonify(dump(FoodOut, catalog.update_food(food_id, data)))


@bp.route("/admin/foods/<int:food_id>/status", methods=["PATCH"])
def admin_update_food_status(food_id):
    data = _body(FoodStatusUpdate)
    return jsonify(dump(FoodOut, catalog.update_food_status(food_id, data)))


@bp.route("/admin/foods/<int:food_id>", methods=["DELETE"])
def admin_delete_food(food_id):
    catalog.deactivate_food(food_id)
    return jsonify({"success": True})


# ---- images ----

@bp.route("/admin/foods/<int:food_id>/images", methods=["GET"])
def admin_list_images(food_id):
    return jsonify(dump_many(ImageOut, catalog.list_images(food_id)))


@bp.route("/admin/foods/<int:food_id>/images", methods=["POST"])
def admin_add_image(food_id):
    data = _body(ImageIn)
    return jsonify(dump(ImageOut, catalog.add_image(food_id, str(data.image_url)))), 201


@bp.route("/admin/images/<int:image_id>", methods=["DELETE"])
def admin_delete_image(image_id):
    catalog.delete_image(image_id)
    return jsonify({"success": True})


# ---- types ----

@bp.route("/admin/types", methods=["GET"])
def admin_list_types():
    return jsonify(dump_many(FoodTypeOut, catalog.list_types()))


@bp.route("/admin/types", methods=["POST"])
def admin_create_type():
    return jsonify(dump(FoodTypeOut, catalog.create_type(_body(NameIn).name))), 201


@bp.route("/admin/types/<int:type_id>", methods=["PUT"])
def admin_rename_type(type_id):
    name = _body(NameIn).name
    return jsonify(dump(FoodTypeOut, catalog.rename_type(type_id, name)))


@bp.route("/admin/types/<int:type_id>", methods=["DELETE"])
def admin_delete_type(type_id):
    catalog.delete_type(type_id)
    return jsonify({"success": True})


# ---- ingredients ----

@bp.route("/admin/ingredients", methods=["GET"])
def admin_list_ingredients():
    return jsonify(dump_many(IngredientOut, catalog.list_ingredients()))


@bp.route("/admin/ingredients", methods=["POST"])
def admin_create_ingredient():
    return jsonify(dump(IngredientOut, catalog.create_ingredient(_body(NameIn).name))), 201


@bp.route("/admin/ingredients/<int:ingredient_id>", methods=["PUT"])
def admin_rename_ingredient(ingredient_id):
    name = _body(NameIn).name
    return jsonify(dump(IngredientOut, catalog.rename_ingredient(ingredient_id, name)))


@bp.route("/admin/ingredients/<int:ingredient_id>", methods=["DELETE"])
def admin_delete_ingredient(ingredient_id):
    catalog.delete_ingredient(ingredient_id)
    return jsonify({"success": True})


# ---- orders ----

@bp.route("/admin/orders", methods=["GET"])
def admin_list_orders():
    status = request.args.get("status")
    return jsonify(dump_many(AdminOrderOut, orders.list_orders(status)))


@bp.route("/admin/orders/<int:order_id>", methods=["PATCH"])
def admin_update_order(order_id):
    data = _body(OrderStatusUpdate)
    return jsonify(dump(OrderOut, orders.set_order_complete(order_id, data.is_complete)))


@bp.route("/admin/orders/pending-summary", methods=["GET"])
def admin_pending_summary():
    return jsonify(dump_many(PendingSummaryOut, orders.pending_summary()))
