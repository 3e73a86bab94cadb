import logging
import webbrowser
from datetime import date

import click
from flask import Blueprint, Flask, current_app, flash, jsonify, redirect, render_template, request, session, url_for
from flask.cli import with_appcontext
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

import catalog
import orders
from api import bp as api_bp
from api.schemas import FoodCreate, FoodStatusUpdate, FoodUpdate, ImageIn, NameIn, PlaceOrderRequest, parse
from auth import AdminGate, admin_required, bp as auth_bp, is_admin, login_manager, session_user
from config import Config
from errors import PayloadInvalid
from logging_config import setup_logging
from models import db, FoodItem, FoodType, Ingredient
from utils.cart import Cart
from utils.countdown import RedirectCountdown
from utils.share import build_link_qr_png, build_order_message, build_whatsapp_url, format_money

logger = logging.getLogger(__name__)

storefront = Blueprint("storefront", __name__)
admin_pages = Blueprint("admin_pages", __name__, url_prefix="/admin")


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))

    db.init_app(app)
    login_manager.init_app(app)
    AdminGate(app.config["ADMIN_EMAILS"]).init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(storefront)
    app.register_blueprint(admin_pages)

    @app.template_filter("money")
    def money_filter(amount):
        return format_money(amount, app.config["CURRENCY_SYMBOL"])

    @app.context_processor
    def inject_globals():
        return {"is_admin": is_admin(), "cart_count": Cart.from_session(session).count()}

    @app.errorhandler(404)
    @app.errorhandler(405)
    def api_routing_error(e):
        if request.path.startswith("/api/"):
            return jsonify({"error": e.description}), e.code
        return e

    app.cli.add_command(share_order_command)

    with app.app_context():
        db.create_all()
    logger.info("Storefront app created (database %s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app


def _flash_error(e):
    message = e.description
    for detail in getattr(e, "details", None) or []:
        loc = ".".join(str(part) for part in detail.get("loc", ()))
        message += f" | {loc + ': ' if loc else ''}{detail.get('msg')}"
    flash(message, "danger")


def _is_weekend(today=None):
    return (today or date.today()).weekday() >= 5


# ---- storefront ----

def _cart_view(cart):
    """Cart lines joined with the live catalog; vanished items are dropped."""
    lines, total = [], 0
    ids = [food_id for food_id, _ in cart.lines()]
    foods = {f.id: f for f in FoodItem.query.filter(FoodItem.id.in_(ids), FoodItem.is_active.is_(True)).all()} if ids else {}
    for food_id, qty in cart.lines():
        food = foods.get(food_id)
        if food is None:
            cart.remove(food_id)
            continue
        subtotal = food.unit_price * qty
        lines.append({"food": food, "quantity": qty, "subtotal": subtotal})
        total += subtotal
    return lines, total


@storefront.route("/")
def index():
    selected_type = catalog.parse_type_filter(request.args.get("typeId"))
    featured_only = request.args.get("featured") == "true"
    cart = Cart.from_session(session)
    cart_lines, cart_total = _cart_view(cart)
    cart.save(session)

    user = session_user()
    customer = {
        "name": user.name if user else "",
        "mobile": user.mobile if user else "",
        "email": user.email if user else "",
    }
    customer.update(session.pop("checkout_form", {}))
    return render_template(
        "index.html",
        types=catalog.list_types(),
        foods=catalog.list_active_foods(selected_type, featured_only),
        featured=catalog.list_active_foods(featured_only=True),
        selected_type=selected_type,
        featured_only=featured_only,
        cart_lines=cart_lines,
        cart_total=cart_total,
        customer=customer,
        is_weekend=_is_weekend(),
    )


@storefront.route("/food/<int:food_id>")
def food_detail(food_id):
    food = catalog.get_active_food(food_id)
    cart = Cart.from_session(session)
    return render_template("food_detail.html", food=food, in_cart=cart.quantity(food.id), is_weekend=_is_weekend())


@storefront.route("/cart/add/<int:food_id>", methods=["POST"])
def cart_add(food_id):
    food = db.session.get(FoodItem, food_id)
    if food is None or not food.is_active:
        flash("That dish is no longer on the menu.", "warning")
    elif food.is_sold_out:
        flash(f"{food.name} is sold out.", "warning")
    elif not food.is_orderable_on(date.today()):
        flash(f"{food.name} is only available at the weekend.", "warning")
    else:
        cart = Cart.from_session(session)
        cart.add(food_id)
        cart.save(session)
        flash(f"Added {food.name} to your cart.", "success")
    next_url = request.form.get("next", "")
    return redirect(next_url if next_url.startswith("/") else url_for("storefront.index"))


@storefront.route("/cart/set/<int:food_id>", methods=["POST"])
def cart_set(food_id):
    cart = Cart.from_session(session)
    if food_id not in cart:
        return redirect(url_for("storefront.index"))
    try:
        cart.set_quantity(food_id, request.form.get("quantity", "0"))
    except ValueError:
        flash("Quantity must be a whole number.", "warning")
    cart.save(session)
    return redirect(url_for("storefront.index"))


@storefront.route("/cart/remove/<int:food_id>", methods=["POST"])
def cart_remove(food_id):
    cart = Cart.from_session(session)
    cart.remove(food_id)
    cart.save(session)
    return redirect(url_for("storefront.index"))


@storefront.route("/cart/clear", methods=["POST"])
def cart_clear():
    cart = Cart.from_session(session)
    cart.clear()
    cart.save(session)
    return redirect(url_for("storefront.index"))


@storefront.route("/checkout", methods=["POST"])
def checkout():
    cart = Cart.from_session(session)
    if cart.is_empty():
        flash("Your cart is empty.", "warning")
        return redirect(url_for("storefront.index"))

    form = {k: request.form.get(k, "").strip() for k in ("name", "mobile", "email")}
    try:
        payload = parse(PlaceOrderRequest, {"customer": form, "items": cart.as_order_items()})
        order, _ = orders.place_order(payload, session_user())
    except PayloadInvalid as e:
        session["checkout_form"] = form
        _flash_error(e)
        return redirect(url_for("storefront.index"))
    except HTTPException as e:
        session["checkout_form"] = form
        flash(e.description, "danger")
        return redirect(url_for("storefront.index"))
    except SQLAlchemyError:
        session["checkout_form"] = form
        flash("Unable to place order.", "danger")
        return redirect(url_for("storefront.index"))

    cart.clear()
    cart.save(session)
    return redirect(url_for("storefront.order_success", order_id=order.id))


@storefront.route("/order-success/<int:order_id>")
def order_success(order_id):
    order = orders.get_order(order_id)
    message = build_order_message(order, current_app.config["CURRENCY_SYMBOL"])
    share_url = build_whatsapp_url(current_app.config["WHATSAPP_NUMBER"], message)
    return render_template(
        "order_success.html",
        order=order,
        share_url=share_url,
        qr_png=build_link_qr_png(share_url),
        seconds=current_app.config["REDIRECT_SECONDS"],
    )


@storefront.route("/orders")
@login_required
def my_orders():
    return render_template("orders.html", orders=orders.list_user_orders(current_user))


# ---- back office pages ----

def _checkbox(form, name):
    return form.get(name) in ("on", "true", "1")


def _food_form_payload(form):
    made_with = [
        {"ingredient_id": ing_id, "quantity": qty}
        for ing_id, qty in zip(form.getlist("ingredient_id"), form.getlist("ingredient_quantity"))
        if ing_id
    ]
    discounted = form.get("discounted_price", "").strip()
    return {
        "name": form.get("name", ""),
        "description": form.get("description", "").strip() or None,
        "original_price": form.get("original_price", ""),
        # blank or zero means "no discount"
        "discounted_price": discounted if discounted and float(discounted) > 0 else None,
        "type_id": form.get("type_id") or None,
        "is_featured": _checkbox(form, "is_featured"),
        "is_weekend_only": _checkbox(form, "is_weekend_only"),
        "made_with": made_with,
    }


@admin_pages.route("/")
@admin_required
def dashboard():
    return render_template(
        "admin/dashboard.html",
        food_count=FoodItem.query.filter_by(is_active=True).count(),
        type_count=FoodType.query.count(),
        ingredient_count=Ingredient.query.count(),
        pending_orders=orders.list_orders("pending"),
    )


@admin_pages.route("/foods", methods=["GET", "POST"])
@admin_required
def foods():
    if request.method == "POST":
        try:
            food = catalog.create_food(parse(FoodCreate, _food_form_payload(request.form)))
            flash(f"Added {food.name}.", "success")
        except ValueError:
            flash("Prices must be numbers.", "danger")
        except HTTPException as e:
            _flash_error(e)
        return redirect(url_for("admin_pages.foods"))
    return render_template(
        "admin/foods.html",
        foods=catalog.list_foods(),
        types=catalog.list_types(),
        ingredients=catalog.list_ingredients(),
    )


@admin_pages.route("/foods/<int:food_id>/edit", methods=["GET", "POST"])
@admin_required
def edit_food(food_id):
    food = catalog.get_food(food_id)
    if request.method == "POST":
        try:
            catalog.update_food(food_id, parse(FoodUpdate, _food_form_payload(request.form)))
            flash("Saved.", "success")
            return redirect(url_for("admin_pages.foods"))
        except ValueError:
            flash("Prices must be numbers.", "danger")
        except HTTPException as e:
            _flash_error(e)
        return redirect(url_for("admin_pages.edit_food", food_id=food_id))
    return render_template(
        "admin/food_edit.html",
        food=food,
        types=catalog.list_types(),
        ingredients=catalog.list_ingredients(),
    )


@admin_pages.route("/foods/<int:food_id>/status", methods=["POST"])
@admin_required
def food_status(food_id):
    field = request.form.get("field")
    if field not in ("is_featured", "is_sold_out", "is_weekend_only"):
        flash("Unknown status.", "danger")
    else:
        data = FoodStatusUpdate(**{field: request.form.get("value") == "true"})
        catalog.update_food_status(food_id, data)
    return redirect(url_for("admin_pages.foods"))


@admin_pages.route("/foods/<int:food_id>/delete", methods=["POST"])
@admin_required
def delete_food(food_id):
    food = catalog.deactivate_food(food_id)
    flash(f"{food.name} removed from the menu.", "success")
    return redirect(url_for("admin_pages.foods"))


def _named_page(kind, items_fn, create_fn):
    if request.method == "POST":
        try:
            create_fn(parse(NameIn, {"name": request.form.get("name", "")}).name)
        except HTTPException as e:
            _flash_error(e)
        return redirect(url_for(f"admin_pages.{kind}"))
    return render_template("admin/named_list.html", kind=kind, items=items_fn())


def _named_action(kind, fn, *args):
    try:
        fn(*args)
    except HTTPException as e:
        _flash_error(e)
    return redirect(url_for(f"admin_pages.{kind}"))


@admin_pages.route("/types", methods=["GET", "POST"])
@admin_required
def types():
    return _named_page("types", catalog.list_types, catalog.create_type)


@admin_pages.route("/types/<int:type_id>/rename", methods=["POST"])
@admin_required
def rename_type(type_id):
    try:
        name = parse(NameIn, {"name": request.form.get("name", "")}).name
    except PayloadInvalid as e:
        _flash_error(e)
        return redirect(url_for("admin_pages.types"))
    return _named_action("types", catalog.rename_type, type_id, name)


@admin_pages.route("/types/<int:type_id>/delete", methods=["POST"])
@admin_required
def delete_type(type_id):
    return _named_action("types", catalog.delete_type, type_id)


@admin_pages.route("/ingredients", methods=["GET", "POST"])
@admin_required
def ingredients():
    return _named_page("ingredients", catalog.list_ingredients, catalog.create_ingredient)


@admin_pages.route("/ingredients/<int:ingredient_id>/rename", methods=["POST"])
@admin_required
def rename_ingredient(ingredient_id):
    try:
        name = parse(NameIn, {"name": request.form.get("name", "")}).name
    except PayloadInvalid as e:
        _flash_error(e)
        return redirect(url_for("admin_pages.ingredients"))
    return _named_action("ingredients", catalog.rename_ingredient, ingredient_id, name)


@admin_pages.route("/ingredients/<int:ingredient_id>/delete", methods=["POST"])
@admin_required
def delete_ingredient(ingredient_id):
    return _named_action("ingredients", catalog.delete_ingredient, ingredient_id)


@admin_pages.route("/images")
@admin_required
def images():
    return render_template("admin/images.html", foods=catalog.list_foods())


@admin_pages.route("/images/<int:food_id>/add", methods=["POST"])
@admin_required
def add_image(food_id):
    try:
        data = parse(ImageIn, {"image_url": request.form.get("image_url", "")})
        catalog.add_image(food_id, str(data.image_url))
    except HTTPException as e:
        _flash_error(e)
    return redirect(url_for("admin_pages.images"))


@admin_pages.route("/images/<int:image_id>/delete", methods=["POST"])
@admin_required
def delete_image(image_id):
    return _named_action("images", catalog.delete_image, image_id)


@admin_pages.route("/orders")
@admin_required
def order_list():
    status = request.args.get("status")
    return render_template("admin/orders.html", orders=orders.list_orders(status), status=status)


@admin_pages.route("/orders/<int:order_id>/toggle", methods=["POST"])
@admin_required
def toggle_order(order_id):
    order = orders.get_order(order_id)
    orders.set_order_complete(order_id, not order.is_complete)
    return redirect(url_for("admin_pages.order_list", status=request.form.get("status") or None))


@admin_pages.route("/pending-summary")
@admin_required
def pending_summary():
    return render_template("admin/pending_summary.html", summary=orders.pending_summary())


# ---- command line ----

@click.command("share-order")
@click.argument("order_id", type=int)
@click.option("--now", is_flag=True, help="Open the share link without waiting.")
@with_appcontext
def share_order_command(order_id, now):
    """Print an order's WhatsApp message and open the share link after a countdown."""
    order = orders.get_order(order_id)
    message = build_order_message(order, current_app.config["CURRENCY_SYMBOL"])
    url = build_whatsapp_url(current_app.config["WHATSAPP_NUMBER"], message)
    click.echo(message)

    def open_link(automatic):
        webbrowser.open(url)
        click.echo("Opened WhatsApp." if automatic else "Opening WhatsApp now.")

    countdown = RedirectCountdown(
        open_link,
        seconds=current_app.config["REDIRECT_SECONDS"],
        on_tick=lambda remaining: click.echo(f"{remaining}..."),
    )
    if now:
        countdown.complete_now()
        return

    click.echo(f"Opening WhatsApp in {countdown.seconds}s, Ctrl-C to share manually.")
    try:
        countdown.run()
    except KeyboardInterrupt:
        countdown.cancel()
        click.echo(f"\nShare it yourself: {url}")


if __name__ == "__main__":
    create_app().run(debug=True)
