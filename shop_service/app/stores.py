from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import Conflict, InsufficientStock, NotFound
from .models import Order, OrderItem, Product, User


class CatalogStore:
    """Products, looked up by id. Stock only moves through decrement_stock."""

    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[Product]:
        return self.db.query(Product).order_by(Product.id).all()

    def find(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get(self, product_id: int) -> Product:
        product = self.find(product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    def create(self, name: str, price: float, description: str, category: str,
               stock: int, image: Optional[str] = None) -> Product:
        product = Product(
            name=name,
            price=price,
            description=description,
            category=category,
            stock=stock,
            image=image,
        )
        self.db.add(product)
        self.db.flush() # Assigns the id.
        if product.image is None:
            product.image = f"product{product.id}.jpg"
        return product

    def decrement_stock(self, product_id: int, quantity: int):
        """Take ``quantity`` units out of stock, only if that many are available.

        The check and the write are a single UPDATE, so stock cannot go
        below zero even if the row changed since it was read.
        """
        updated = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.stock >= quantity)
            .update({Product.stock: Product.stock - quantity}, synchronize_session="fetch")
        )
        if updated != 1:
            product = self.get(product_id)
            raise InsufficientStock(
                f"Insufficient stock for {product.name}. "
                f"Available: {product.stock}, Requested: {quantity}",
                product_id=product_id,
                available=product.stock,
                requested=quantity,
            )


class AccountStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_by_id(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")
        return user

    def create(self, name: str, email: str, password_hash: str) -> User:
        if self.find_by_email(email):
            raise Conflict("User already exists")
        user = User(name=name, email=email, password_hash=password_hash)
        self.db.add(user)
        try:
            self.db.flush()
        except IntegrityError:
            # Unique index on email caught a duplicate the lookup missed.
            self.db.rollback()
            raise Conflict("User already exists")
        return user

    def update_name(self, user_id: int, name: str) -> User:
        user = self.find_by_id(user_id)
        user.name = name
        self.db.flush()
        return user


class OrderStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: int, items: Sequence[Tuple[int, int]], total_amount: float,
            status: str = "confirmed") -> Order:
        order = Order(user_id=user_id, total_amount=total_amount, status=status)
        order.items = [
            OrderItem(position=position, product_id=product_id, quantity=quantity)
            for position, (product_id, quantity) in enumerate(items)
        ]
        self.db.add(order)
        self.db.flush()
        return order

    def list_for_user(self, user_id: int) -> List[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.id)
            .all()
        )

    def get(self, order_id: int, user_id: int) -> Order:
        # Someone else's order is reported exactly like a missing one.
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id, Order.user_id == user_id)
            .first()
        )
        if not order:
            raise NotFound("Order not found")
        return order
