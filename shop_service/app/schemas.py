from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from .models import Order, Product, User

# Largest value an SQLite INTEGER column holds.
MAX_ID = 2**63 - 1


# ---------- Requests ----------
# Fields the handlers check themselves are Optional, so a missing value gets
# the handler's own message instead of a generic validation error.

class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_Request):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class LoginRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        # Same normalization EmailStr applies at registration. A malformed
        # address is left as is and simply matches no account.
        if not value:
            return value
        try:
            return validate_email(value)[1]
        except PydanticCustomError:
            return value


class CartAddRequest(_Request):
    product_id: int = Field(..., alias="productId", gt=0, le=MAX_ID)
    quantity: int = Field(..., gt=0)


class OrderLine(_Request):
    product_id: int = Field(..., alias="productId", gt=0, le=MAX_ID)
    quantity: int = Field(..., gt=0)


class OrderRequest(_Request):
    items: Optional[List[OrderLine]] = None
    total_amount: Optional[float] = Field(None, alias="totalAmount", allow_inf_nan=False)


class ProfileUpdate(_Request):
    name: Optional[str] = None


class ProductCreate(_Request):
    name: Optional[str] = None
    price: Optional[float] = Field(None, allow_inf_nan=False)
    description: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = Field(None, le=MAX_ID)


# ---------- Responses ----------

def _iso(value: datetime) -> str:
    # SQLite hands datetimes back naive; they were written as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def user_out(user: User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email}


def product_out(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "description": product.description,
        "category": product.category,
        "stock": product.stock,
        "image": product.image,
    }


def order_out(order: Order) -> dict:
    return {
        "id": order.id,
        "userId": order.user_id,
        "items": [{"productId": i.product_id, "quantity": i.quantity} for i in order.items],
        "totalAmount": order.total_amount,
        "status": order.status,
        "createdAt": _iso(order.created_at),
    }


def order_event(order: Order) -> dict:
    """Payload of the ``order.confirmed`` event."""
    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "items": [{"product_id": i.product_id, "quantity": i.quantity} for i in order.items],
        "total_amount": order.total_amount,
        "status": order.status,
        "created_at": _iso(order.created_at),
    }
