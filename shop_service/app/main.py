# --- Imports ---
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Internal imports from sibling modules
from .config import configure_logging, settings
from .database import create_tables, session_scope
from .errors import NotFound, ShopError, Unauthorized, ValidationError
from .messaging.producer import build_producer
from .orders import LineItem, OrderService
from .schemas import (
    MAX_ID,
    CartAddRequest,
    LoginRequest,
    OrderRequest,
    ProductCreate,
    ProfileUpdate,
    RegisterRequest,
    order_event,
    order_out,
    product_out,
    user_out,
)
from .security import CredentialService, Identity
from .seed import init_store
from .stores import AccountStore, CatalogStore

logger = logging.getLogger(__name__)

# --- Database Initialization ---
# Create database tables defined in models.py if they don't exist
create_tables()

credentials = CredentialService(
    settings.jwt_secret,
    token_ttl=timedelta(hours=settings.token_ttl_hours),
    rounds=settings.bcrypt_rounds,
)
producer = build_producer(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_store(seed=settings.seed_catalog)
    logger.info("Shop service ready (database=%s, events=%s)",
                settings.database_url, settings.rabbitmq_host or "disabled")
    yield


# --- App Instance ---
app = FastAPI(title="Shop Service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Dependencies ---

def get_credentials() -> CredentialService:
    return credentials


def get_producer():
    return producer


def get_current_user(
    authorization: Optional[str] = Header(None),
    creds: CredentialService = Depends(get_credentials),
) -> Identity:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    token = None
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer":
            token = value.strip()
    if not token:
        raise Unauthorized("Access denied. No token provided.")
    return creds.verify_token(token)


def _parse_id(raw: str, message: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise NotFound(message)
    # Ids are SQLite integers; anything outside that range cannot exist.
    if not 0 < value <= MAX_ID:
        raise NotFound(message)
    return value


# --- Error Handlers ---

@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {field}: {first.get('msg')}" if field else f"Invalid request: {first.get('msg')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and request.url.path.startswith("/api"):
        message = "API endpoint not found"
    else:
        message = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- Endpoints ---

@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/auth/register", status_code=201)
def register(
    req: RegisterRequest,
    creds: CredentialService = Depends(get_credentials),
):
    if not req.name or not req.email or not req.password:
        raise ValidationError("All fields are required")
    if len(req.password) < 6:
        raise ValidationError("Password must be at least 6 characters")

    # Hashing stays outside the store lock.
    password_hash = creds.hash_password(req.password)
    with session_scope() as db:
        user = AccountStore(db).create(req.name, req.email, password_hash)
        db.commit()
        profile = user_out(user)
    logger.info("Registered user %s (%s)", profile["id"], profile["email"])

    return {
        "success": True,
        "message": "User registered successfully",
        "token": creds.issue_token(profile["id"], profile["email"]),
        "user": profile,
    }


@app.post("/api/auth/login")
def login(
    req: LoginRequest,
    creds: CredentialService = Depends(get_credentials),
):
    if not req.email or not req.password:
        raise ValidationError("Email and password are required")

    with session_scope() as db:
        user = AccountStore(db).find_by_email(req.email)
        profile = user_out(user) if user else None
        password_hash = user.password_hash if user else None

    if profile is None or not creds.verify_password(req.password, password_hash):
        logger.info("Failed login for %s", req.email)
        raise ValidationError("Invalid credentials")

    return {
        "success": True,
        "message": "Login successful",
        "token": creds.issue_token(profile["id"], profile["email"]),
        "user": profile,
    }


@app.get("/api/products")
def list_products():
    """Lists the whole catalog."""
    with session_scope() as db:
        products = [product_out(p) for p in CatalogStore(db).list()]
    return {"success": True, "products": products}


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    product_id = _parse_id(product_id, "Product not found")
    with session_scope() as db:
        product = product_out(CatalogStore(db).get(product_id))
    return {"success": True, "product": product}


# Prices a single cart line. Nothing is reserved.
@app.post("/api/cart/add")
def add_to_cart(
    req: CartAddRequest,
    identity: Identity = Depends(get_current_user),
):
    with session_scope() as db:
        item = OrderService(db).preview_item(req.product_id, req.quantity)
    return {
        "success": True,
        "message": "Product added to cart",
        "item": {
            "productId": item.product_id,
            "name": item.name,
            "price": item.price,
            "quantity": item.quantity,
        },
    }


@app.post("/api/orders", status_code=201)
def create_order(
    req: OrderRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_user),
    events=Depends(get_producer),
):
    """
    Places an order for the caller.
    - Every line is checked against current stock before any stock moves.
    - The client's totalAmount must match the catalog prices within 0.01.
    """
    items = [LineItem(product_id=line.product_id, quantity=line.quantity) for line in req.items or []]
    with session_scope() as db:
        order = OrderService(db).place_order(identity.user_id, items, req.total_amount)
        body, event = order_out(order), order_event(order)

    # Published after the response; a broker outage never fails the order.
    background_tasks.add_task(events.publish, "order.confirmed", event)

    return {
        "success": True,
        "message": "Order processed successfully",
        "order": body,
    }


@app.get("/api/orders")
def list_orders(identity: Identity = Depends(get_current_user)):
    with session_scope() as db:
        orders = [order_out(o) for o in OrderService(db).list_for_user(identity.user_id)]
    return {"success": True, "orders": orders}


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, identity: Identity = Depends(get_current_user)):
    order_id = _parse_id(order_id, "Order not found")
    with session_scope() as db:
        order = order_out(OrderService(db).get(order_id, identity.user_id))
    return {"success": True, "order": order}


@app.put("/api/users/profile")
def update_profile(
    req: ProfileUpdate,
    identity: Identity = Depends(get_current_user),
):
    if not req.name:
        raise ValidationError("Name is required")

    with session_scope() as db:
        user = AccountStore(db).update_name(identity.user_id, req.name)
        db.commit()
        profile = user_out(user)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "user": profile,
    }


# Any authenticated user may add products; there are no roles.
@app.post("/api/admin/products", status_code=201)
def create_product(
    req: ProductCreate,
    identity: Identity = Depends(get_current_user),
):
    if not req.name or not req.description or not req.category or req.price is None or req.stock is None:
        raise ValidationError("All fields are required")
    if req.price < 0:
        raise ValidationError("Price must not be negative")
    if req.stock < 0:
        raise ValidationError("Stock must not be negative")

    with session_scope() as db:
        product = CatalogStore(db).create(
            name=req.name,
            price=round(req.price, 2),
            description=req.description,
            category=req.category,
            stock=req.stock,
        )
        db.commit()
        created = product_out(product)
    logger.info("User %s added product %s (%s)", identity.user_id, created["id"], created["name"])
    return {
        "success": True,
        "message": "Product added successfully",
        "product": created,
    }


def run():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
