"""
Request and response contracts for the JSON API.

Wire keys are camelCase (``foodItemId``), attributes are snake_case. Requests
are validated with :func:`parse`, which turns a pydantic ``ValidationError``
into :class:`errors.PayloadInvalid`; responses are rendered with :func:`dump`.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, HttpUrl, PositiveInt, StrictBool,
    ValidationError, field_validator, model_validator,
)
from pydantic.alias_generators import to_camel

from errors import PayloadInvalid


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class OutModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def parse(model_cls, data):
    if data is None:
        raise PayloadInvalid(details=[{"msg": "Request body must be JSON"}])
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise PayloadInvalid(details=json.loads(e.json(include_url=False)))


def dump(model_cls, obj):
    return model_cls.model_validate(obj).model_dump(mode="json", by_alias=True)


def dump_many(model_cls, objs):
    return [dump(model_cls, o) for o in objs]


# ---- requests ----

class CustomerIn(CamelModel):
    name: str = Field(min_length=1)
    mobile: str = Field(min_length=1)
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value):
        # Google sign-in stores addresses lower-cased
        return value.lower()


class CartLineIn(CamelModel):
    food_item_id: PositiveInt
    quantity: PositiveInt


class PlaceOrderRequest(CamelModel):
    customer: CustomerIn
    items: List[CartLineIn] = Field(min_length=1)


class MadeWithIn(CamelModel):
    ingredient_id: PositiveInt
    quantity: str = Field(min_length=1)


class FoodCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    original_price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    discounted_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    type_id: Optional[PositiveInt] = None
    is_featured: bool = False
    is_sold_out: bool = False
    is_weekend_only: bool = False
    is_active: bool = True
    made_with: List[MadeWithIn] = Field(default_factory=list)
    images: List[HttpUrl] = Field(default_factory=list)


class FoodUpdate(CamelModel):
    """Partial update; only the fields present in the payload are applied."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    original_price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    discounted_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    type_id: Optional[PositiveInt] = None
    is_featured: Optional[bool] = None
    is_sold_out: Optional[bool] = None
    is_weekend_only: Optional[bool] = None
    is_active: Optional[bool] = None
    made_with: Optional[List[MadeWithIn]] = None
    images: Optional[List[HttpUrl]] = None

    @model_validator(mode="after")
    def _check(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided.")
        for field in ("name", "original_price", "is_featured", "is_sold_out",
                      "is_weekend_only", "is_active", "made_with", "images"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{to_camel(field)} cannot be null")
        return self


class FoodStatusUpdate(CamelModel):
    is_featured: Optional[StrictBool] = None
    is_sold_out: Optional[StrictBool] = None
    is_weekend_only: Optional[StrictBool] = None

    @model_validator(mode="after")
    def _check(self):
        if not any(getattr(self, f) is not None for f in ("is_featured", "is_sold_out", "is_weekend_only")):
            raise ValueError("At least one status flag must be provided.")
        return self


class NameIn(CamelModel):
    name: str = Field(min_length=1, max_length=120)


class ImageIn(CamelModel):
    image_url: HttpUrl


class OrderStatusUpdate(CamelModel):
    is_complete: StrictBool


# ---- responses ----

class FoodTypeOut(OutModel):
    id: int
    name: str


class IngredientOut(OutModel):
    id: int
    name: str


class ImageOut(OutModel):
    id: int
    food_item_id: int
    path: str


class MadeWithOut(OutModel):
    id: int
    quantity: str
    ingredient: IngredientOut


class FoodOut(OutModel):
    id: int
    name: str
    description: Optional[str] = None
    original_price: float
    discounted_price: Optional[float] = None
    is_featured: bool
    is_sold_out: bool
    is_weekend_only: bool
    is_active: bool
    type: Optional[FoodTypeOut] = None
    made_with: List[MadeWithOut]
    images: List[ImageOut]


class FoodSummaryOut(OutModel):
    id: int
    name: str
    images: List[ImageOut]


class UserOut(OutModel):
    id: int
    name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    last_logged_in: Optional[datetime] = None


class OrderItemOut(OutModel):
    id: int
    food_item_id: int
    quantity: int
    price: float
    food_item: FoodSummaryOut


class OrderOut(OutModel):
    id: int
    customer_name: str
    customer_mobile: str
    customer_email: Optional[str] = None
    total_price: float
    is_complete: bool
    created_at: datetime
    user_id: int
    items: List[OrderItemOut]


class AdminOrderOut(OrderOut):
    user: UserOut


class PlacedOrderOut(OutModel):
    user: UserOut
    order: OrderOut


class PendingSummaryOut(OutModel):
    food_item_id: int
    food_name: str
    quantity: int
