from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base # Import the Base class from our database setup


def _utcnow():
    return datetime.now(timezone.utc)


# A product in the catalog. Only stock changes after creation.
class Product(Base):
    __tablename__ = "products"

    # sqlite_autoincrement keeps ids monotonic, they are never reused.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False) # Unit price in dollars.
    description = Column(String, nullable=False, default="")
    category = Column(String, nullable=False, index=True)
    stock = Column(Integer, nullable=False, default=0) # Available units, never negative.
    image = Column(String)


# A registered account.
class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False) # bcrypt hash, never serialized.
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


# A placed order. Immutable once created.
class Order(Base):
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    total_amount = Column(Float, nullable=False) # Server-computed total.
    status = Column(String, nullable=False, default="confirmed")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


# One (product, quantity) line of an order, kept in request order.
class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    position = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
