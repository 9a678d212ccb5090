import logging

from sqlalchemy.orm import Session

from .database import SessionLocal, create_tables, drop_tables, store_lock
from .stores import CatalogStore

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {
        "name": "Smartphone Pro",
        "price": 699.99,
        "description": "Latest smartphone with advanced features",
        "category": "Electronics",
        "stock": 50,
        "image": "smartphone.jpg",
    },
    {
        "name": "Laptop Ultra",
        "price": 1299.99,
        "description": "High-performance laptop for professionals",
        "category": "Electronics",
        "stock": 30,
        "image": "laptop.jpg",
    },
    {
        "name": "Wireless Headphones",
        "price": 199.99,
        "description": "Premium noise-canceling headphones",
        "category": "Audio",
        "stock": 100,
        "image": "headphones.jpg",
    },
    {
        "name": "Smart Watch",
        "price": 299.99,
        "description": "Fitness tracking smartwatch",
        "category": "Wearables",
        "stock": 75,
        "image": "smartwatch.jpg",
    },
    {
        "name": "Gaming Console",
        "price": 499.99,
        "description": "Next-gen gaming console",
        "category": "Gaming",
        "stock": 25,
        "image": "console.jpg",
    },
    {
        "name": "4K Monitor",
        "price": 399.99,
        "description": "Ultra-high definition monitor",
        "category": "Electronics",
        "stock": 40,
        "image": "monitor.jpg",
    },
]


def seed_catalog(db: Session) -> int:
    """Load the demo products into an empty catalog. Returns how many were added."""
    catalog = CatalogStore(db)
    if catalog.list():
        return 0
    for product in DEMO_PRODUCTS:
        catalog.create(**product)
    db.commit()
    logger.info("Seeded catalog with %d products", len(DEMO_PRODUCTS))
    return len(DEMO_PRODUCTS)


def init_store(seed: bool = True, reset: bool = False):
    """Create the tables (dropping them first when ``reset``) and seed the catalog."""
    with store_lock:
        if reset:
            drop_tables()
        create_tables()
        if seed:
            with SessionLocal() as db:
                seed_catalog(db)
