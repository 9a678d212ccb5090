import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from .errors import (
    InsufficientStock,
    InvalidRequest,
    NotFound,
    ShopError,
    TotalMismatch,
    ValidationError,
)
from .models import Order
from .stores import CatalogStore, OrderStore

logger = logging.getLogger(__name__)

# Largest accepted difference between the client's total and ours.
TOTAL_TOLERANCE = Decimal("0.01")

CONFIRMED = "confirmed"


@dataclass(frozen=True)
class LineItem:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class CartItem:
    product_id: int
    name: str
    price: float
    quantity: int


def _money(value) -> Decimal:
    # Via str, so 699.99 stays 699.99 instead of its binary expansion.
    return Decimal(str(value))


class OrderService:
    """Order placement and lookup on top of the catalog and order stores."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogStore(db)
        self.orders = OrderStore(db)

    def place_order(self, user_id: int, items: Optional[Sequence[LineItem]], claimed_total) -> Order:
        """
        Validate every line against current stock, check the client's total
        against the catalog prices and, only if everything passes, take the
        stock and record a confirmed order.

        Nothing is written unless the whole order is accepted: on any error
        the transaction is rolled back and stock stays as it was.
        """
        if not items:
            raise InvalidRequest("Order must contain at least one item")
        if claimed_total is None:
            raise ValidationError("Total amount is required")

        try:
            computed_total = self._validate(items)

            claimed = _money(claimed_total)
            if abs(computed_total - claimed) > TOTAL_TOLERANCE:
                raise TotalMismatch("Total amount mismatch", computed=computed_total, claimed=claimed)

            # Second pass: every line passed, take the stock.
            for item in items:
                self.catalog.decrement_stock(item.product_id, item.quantity)

            order = self.orders.add(
                user_id,
                [(item.product_id, item.quantity) for item in items],
                float(computed_total),
                status=CONFIRMED,
            )
            self.db.commit()
        except ShopError as e:
            self.db.rollback()
            logger.warning("Order rejected for user %s: %s", user_id, e.message)
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info("Order %s placed by user %s, total %s", order.id, user_id, computed_total)
        return order

    def _validate(self, items: Sequence[LineItem]) -> Decimal:
        total = Decimal("0")
        requested: Dict[int, int] = {}
        for item in items:
            product = self.catalog.find(item.product_id)
            if not product:
                raise NotFound(f"Product with ID {item.product_id} not found")

            # Lines repeating a product draw on the same stock.
            wanted = requested.get(product.id, 0) + item.quantity
            if product.stock < wanted:
                raise InsufficientStock(
                    f"Insufficient stock for {product.name}. "
                    f"Available: {product.stock}, Requested: {wanted}",
                    product_id=product.id,
                    available=product.stock,
                    requested=wanted,
                )
            requested[product.id] = wanted
            total += _money(product.price) * item.quantity
        return total

    def preview_item(self, product_id: int, quantity: int) -> CartItem:
        """Price one cart line without touching stock."""
        product = self.catalog.get(product_id)
        if product.stock < quantity:
            raise InsufficientStock(
                "Insufficient stock",
                product_id=product.id,
                available=product.stock,
                requested=quantity,
            )
        return CartItem(product_id=product.id, name=product.name, price=product.price, quantity=quantity)

    def list_for_user(self, user_id: int) -> List[Order]:
        return self.orders.list_for_user(user_id)

    def get(self, order_id: int, user_id: int) -> Order:
        return self.orders.get(order_id, user_id)
