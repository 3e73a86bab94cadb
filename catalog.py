import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from errors import PayloadInvalid, RecordNotFound, StillReferenced
from models import db, FoodItem, FoodType, Image, Ingredient, MadeWith

logger = logging.getLogger(__name__)


def _food_query():
    return FoodItem.query.options(
        selectinload(FoodItem.made_with),
        selectinload(FoodItem.images),
    )


# ---- storefront reads ----

def list_active_foods(type_id=None, featured_only=False):
    query = _food_query().filter(FoodItem.is_active.is_(True))
    if featured_only:
        query = query.filter(FoodItem.is_featured.is_(True))
    if type_id is not None:
        query = query.filter(FoodItem.type_id == type_id)
    return query.order_by(FoodItem.is_featured.desc(), FoodItem.name.asc()).all()


def get_active_food(food_id):
    food = _food_query().filter(FoodItem.id == food_id, FoodItem.is_active.is_(True)).first()
    if food is None:
        raise RecordNotFound("Food item not found")
    return food


def parse_type_filter(raw):
    """``typeId`` query value to an id; "all", junk and non-positive mean no filter."""
    if raw in (None, "", "all"):
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


# ---- food items ----

def list_foods():
    return _food_query().order_by(FoodItem.name.asc()).all()


def get_food(food_id):
    food = _food_query().filter(FoodItem.id == food_id).first()
    if food is None:
        raise RecordNotFound("Not found")
    return food


def _check_prices(original, discounted):
    if discounted is not None and original is not None and discounted > original:
        raise PayloadInvalid(
            details=[{"loc": ["discountedPrice"], "msg": "Discounted price cannot exceed the original price"}]
        )


def _check_type(type_id):
    if type_id is not None and db.session.get(FoodType, type_id) is None:
        raise RecordNotFound(f"Type {type_id} not found")


def _check_ingredients(made_with):
    ids = {mw.ingredient_id for mw in made_with}
    if not ids:
        return
    found = {i.id for i in Ingredient.query.filter(Ingredient.id.in_(ids)).all()}
    missing = sorted(ids - found)
    if missing:
        raise RecordNotFound(f"Ingredients not found: {', '.join(str(i) for i in missing)}")


def _build_made_with(made_with):
    return [MadeWith(ingredient_id=mw.ingredient_id, quantity=mw.quantity) for mw in made_with]


def _build_images(paths):
    return [Image(path=str(path)) for path in paths]


def create_food(data):
    _check_prices(data.original_price, data.discounted_price)
    _check_type(data.type_id)
    _check_ingredients(data.made_with)

    food = FoodItem(
        name=data.name,
        description=data.description,
        original_price=data.original_price,
        discounted_price=data.discounted_price,
        type_id=data.type_id,
        is_featured=data.is_featured,
        is_sold_out=data.is_sold_out,
        is_weekend_only=data.is_weekend_only,
        is_active=data.is_active,
    )
    food.made_with = _build_made_with(data.made_with)
    food.images = _build_images(data.images)
    db.session.add(food)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to create food item %r", data.name)
        raise
    logger.info("Created food item #%s %r", food.id, food.name)
    return food


SCALAR_FIELDS = ("name", "description", "original_price", "discounted_price", "type_id",
                 "is_featured", "is_sold_out", "is_weekend_only", "is_active")


def update_food(food_id, data):
    # made_with / images, when given, replace the old rows in the same transaction
    food = get_food(food_id)
    fields = data.model_fields_set

    original = data.original_price if "original_price" in fields else food.original_price
    discounted = data.discounted_price if "discounted_price" in fields else food.discounted_price
    _check_prices(original, discounted)
    if "type_id" in fields:
        _check_type(data.type_id)
    if "made_with" in fields:
        _check_ingredients(data.made_with)

    try:
        for field in SCALAR_FIELDS:
            if field in fields:
                setattr(food, field, getattr(data, field))

        if "made_with" in fields:
            food.made_with.clear()
            db.session.flush()
            food.made_with.extend(_build_made_with(data.made_with))
        if "images" in fields:
            food.images.clear()
            db.session.flush()
            food.images.extend(_build_images(data.images))

        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to update food item #%s", food_id)
        raise

    logger.info("Updated food item #%s (%s)", food_id, ", ".join(sorted(fields)))
    return get_food(food_id)


def update_food_status(food_id, data):
    food = get_food(food_id)
    for field in ("is_featured", "is_sold_out", "is_weekend_only"):
        value = getattr(data, field)
        if value is not None:
            setattr(food, field, value)
    db.session.commit()
    logger.info("Status of food item #%s updated", food_id)
    return food


def deactivate_food(food_id):
    food = get_food(food_id)
    food.is_active = False
    db.session.commit()
    logger.info("Deactivated food item #%s", food_id)
    return food


# ---- types and ingredients ----

def _list_named(model):
    return model.query.order_by(model.name.asc()).all()


def _get_named(model, record_id, label):
    record = db.session.get(model, record_id)
    if record is None:
        raise RecordNotFound(f"{label} not found")
    return record


def _create_named(model, name):
    record = model(name=name)
    db.session.add(record)
    db.session.commit()
    logger.info("Created %s #%s %r", model.__name__, record.id, name)
    return record


def _rename(model, record_id, name, label):
    record = _get_named(model, record_id, label)
    record.name = name
    db.session.commit()
    return record


def _delete_named(model, record_id, label):
    # FK RESTRICT refuses the delete while food items still point here
    record = _get_named(model, record_id, label)
    db.session.delete(record)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Refused to delete %s #%s: still referenced", model.__name__, record_id)
        raise StillReferenced(f"{label} is still used by one or more food items")
    logger.info("Deleted %s #%s", model.__name__, record_id)


def list_types():
    return _list_named(FoodType)


def create_type(name):
    return _create_named(FoodType, name)


def rename_type(type_id, name):
    return _rename(FoodType, type_id, name, "Type")


def delete_type(type_id):
    _delete_named(FoodType, type_id, "Type")


def list_ingredients():
    return _list_named(Ingredient)


def create_ingredient(name):
    return _create_named(Ingredient, name)


def rename_ingredient(ingredient_id, name):
    return _rename(Ingredient, ingredient_id, name, "Ingredient")


def delete_ingredient(ingredient_id):
    _delete_named(Ingredient, ingredient_id, "Ingredient")


# ---- images ----

def list_images(food_id):
    return get_food(food_id).images


def add_image(food_id, url):
    food = get_food(food_id)
    image = Image(food_item_id=food.id, path=url)
    db.session.add(image)
    db.session.commit()
    logger.info("Added image #%s to food item #%s", image.id, food.id)
    return image


def delete_image(image_id):
    image = db.session.get(Image, image_id)
    if image is None:
        raise RecordNotFound("Image not found")
    db.session.delete(image)
    db.session.commit()
    logger.info("Deleted image #%s", image_id)
