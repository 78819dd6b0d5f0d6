"""
Storefront API.

The process serves exactly one shopper session: every client shares the same
cart, wishlist and signed-in user. Run one instance per shopper; this is not
a multi-user server.
"""

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, EmailStr, Field

import database
from checkout import place_order, summarize
from datasource import filter_orders
from sample_data import CATEGORIES, PRODUCTS, REVIEWS, VARIANTS
from schemas import TABLES, CustomerInfo, OrderStatus, ProductFilters, Result
from session import StorefrontSession, create_session
from settings import settings
from variants import VariantResolver, describe_selection

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("storefront")

app = FastAPI(title="Storefront API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_session: Optional[StorefrontSession] = None


def get_session() -> StorefrontSession:
    global _session
    if _session is None:
        _session = create_session()
    return _session


# ---------------------------
# Utility
# ---------------------------
def unwrap(result: Result, status_code: int = 502):
    if not result.ok:
        raise HTTPException(status_code, result.error)
    return result.data


def load_product(session: StorefrontSession, product_id: str):
    product = unwrap(session.products.get_product_by_id(product_id))
    if product is None:
        raise HTTPException(404, "Product not found")
    return product


def cart_payload(session: StorefrontSession) -> dict:
    return {
        "items": [{**item.model_dump(), "key": item.key} for item in session.cart.items],
        "subtotal": session.cart.total(),
        "count": session.cart.item_count(),
    }


def wishlist_payload(session: StorefrontSession) -> dict:
    items = session.wishlist.items
    return {"items": [i.model_dump() for i in items], "count": len(items)}


def require_user(session: StorefrontSession = Depends(get_session)):
    user = session.current_user()
    if user is None:
        raise HTTPException(401, "Sign in required")
    return user


def require_admin(session: StorefrontSession = Depends(get_session)):
    user = require_user(session)
    if user.role != "admin":
        raise HTTPException(403, "Admin privileges required")
    return user


# ---------------------------
# Request Models
# ---------------------------
class SelectionRequest(BaseModel):
    attributes: Dict[str, Optional[str]] = Field(default_factory=dict)


class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    attributes: Optional[Dict[str, str]] = None
    quantity: int = Field(1, ge=1, le=99)


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=0, le=99)


class CheckoutRequest(BaseModel):
    customer: CustomerInfo
    promo_code: Optional[str] = None


class Credentials(BaseModel):
    email: EmailStr
    password: str


class SignUpRequest(Credentials):
    full_name: Optional[str] = None


class ResetRequest(BaseModel):
    email: EmailStr


class PasswordUpdate(BaseModel):
    token: str
    new_password: str


class StatusUpdate(BaseModel):
    status: OrderStatus


# ---------------------------
# Catalog
# ---------------------------
@app.get("/")
def read_root():
    return {
        "brand": "Storefront",
        "message": "Small things that bring joy.",
        "session_mode": "single-shopper",
    }


@app.get("/api/categories")
def list_categories():
    return {"categories": CATEGORIES}


@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    session: StorefrontSession = Depends(get_session),
):
    filters = ProductFilters(category=category, search=search, limit=limit)
    products = unwrap(session.products.get_products(filters))
    return {"products": [p.model_dump() for p in products]}


@app.get("/api/products/featured")
def featured_products(limit: int = Query(default=6, ge=1, le=24),
                      session: StorefrontSession = Depends(get_session)):
    products = unwrap(session.products.get_featured_products(limit))
    return {"products": [p.model_dump() for p in products]}


@app.get("/api/products/{product_id}")
def get_product(product_id: str, session: StorefrontSession = Depends(get_session)):
    product = load_product(session, product_id)
    variants = unwrap(session.products.get_variants_for_product(product_id))
    related = session.products.get_related_products(product)
    return {
        "product": product.model_dump(),
        "selection": describe_selection(product, variants).model_dump(),
        "related": [p.model_dump() for p in related.data] if related.ok else [],
        "in_wishlist": session.wishlist.is_in_wishlist(product.id),
    }


@app.get("/api/products/{product_id}/reviews")
def get_reviews(product_id: str):
    for key, reviews in REVIEWS.items():
        if str(key) == product_id:
            return {"reviews": reviews}
    return {"reviews": []}


@app.post("/api/products/{product_id}/selection")
def select_options(product_id: str, payload: SelectionRequest,
                   session: StorefrontSession = Depends(get_session)):
    product = load_product(session, product_id)
    variants = unwrap(session.products.get_variants_for_product(product_id))
    return describe_selection(product, variants, payload.attributes).model_dump()


# ---------------------------
# Cart
# ---------------------------
@app.get("/api/cart")
def get_cart(session: StorefrontSession = Depends(get_session)):
    return cart_payload(session)


@app.post("/api/cart/add")
def add_to_cart(payload: AddToCartRequest, session: StorefrontSession = Depends(get_session)):
    product = load_product(session, payload.product_id)
    variants = unwrap(session.products.get_variants_for_product(payload.product_id))
    resolver = VariantResolver(variants)

    variant = None
    if resolver.has_variants:
        if payload.variant_id is not None:
            variant = next((v for v in variants if str(v.id) == payload.variant_id), None)
            if variant is None:
                raise HTTPException(404, "Variant not found")
            if not variant.selectable:
                raise HTTPException(409, "Selected option is unavailable")
        else:
            chosen = payload.attributes or {}
            variant = resolver.resolve(chosen)
            if variant is None:
                if set(chosen) >= set(resolver.attribute_matrix):
                    raise HTTPException(409, "Selected combination is unavailable")
                raise HTTPException(400, "Please select all options")
    elif product.stock <= 0:
        raise HTTPException(409, "Out of stock")

    session.cart.add_to_cart(product, variant,
                             attributes=variant.attributes if variant else None,
                             quantity=payload.quantity)
    return cart_payload(session)


@app.put("/api/cart/items/{key}")
def update_cart_item(key: str, payload: QuantityUpdate, session: StorefrontSession = Depends(get_session)):
    session.cart.update_quantity(key, payload.quantity)
    return cart_payload(session)


@app.delete("/api/cart/items/{key}")
def remove_cart_item(key: str, session: StorefrontSession = Depends(get_session)):
    session.cart.remove_from_cart(key)
    return cart_payload(session)


@app.delete("/api/cart")
def clear_cart(session: StorefrontSession = Depends(get_session)):
    session.cart.clear_cart()
    return cart_payload(session)


# ---------------------------
# Wishlist
# ---------------------------
@app.get("/api/wishlist")
def get_wishlist(session: StorefrontSession = Depends(get_session)):
    return wishlist_payload(session)


@app.post("/api/wishlist/{product_id}")
def add_to_wishlist(product_id: str, session: StorefrontSession = Depends(get_session)):
    session.wishlist.add_to_wishlist(load_product(session, product_id))
    return wishlist_payload(session)


@app.post("/api/wishlist/{product_id}/toggle")
def toggle_wishlist(product_id: str, session: StorefrontSession = Depends(get_session)):
    in_wishlist = session.wishlist.toggle(load_product(session, product_id))
    return {**wishlist_payload(session), "in_wishlist": in_wishlist}


@app.delete("/api/wishlist/{product_id}")
def remove_from_wishlist(product_id: str, session: StorefrontSession = Depends(get_session)):
    session.wishlist.remove_from_wishlist(product_id)
    return wishlist_payload(session)


@app.delete("/api/wishlist")
def clear_wishlist(session: StorefrontSession = Depends(get_session)):
    session.wishlist.clear_wishlist()
    return wishlist_payload(session)


# ---------------------------
# Checkout & Orders
# ---------------------------
@app.get("/api/checkout/summary")
def checkout_summary(promo_code: Optional[str] = None, session: StorefrontSession = Depends(get_session)):
    return summarize(session.cart.items, promo_code).model_dump()


@app.post("/api/checkout")
def checkout(payload: CheckoutRequest, session: StorefrontSession = Depends(get_session)):
    if len(session.cart) == 0:
        raise HTTPException(400, "Your cart is empty")
    result = place_order(session.cart, session.orders, payload.customer,
                         user=session.current_user(), promo_code=payload.promo_code)
    data = unwrap(result)
    return {
        "order": data["order"],
        "items": data["items"],
        "summary": data["summary"].model_dump(),
    }


@app.get("/api/orders")
def my_orders(user=Depends(require_user), session: StorefrontSession = Depends(get_session)):
    return {"orders": unwrap(session.orders.get_user_orders(user.id))}


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, email: Optional[str] = None, session: StorefrontSession = Depends(get_session)):
    order = unwrap(session.orders.get_order(order_id))
    if order is None:
        raise HTTPException(404, "Order not found")

    user = session.current_user()
    is_owner = user is not None and (user.role == "admin" or order.get("user_id") == user.id)
    has_receipt = bool(email) and email.strip().lower() == (order.get("customer_email") or "").lower()
    if not (is_owner or has_receipt):
        if user is None and not email:
            raise HTTPException(401, "Sign in or provide the order email")
        raise HTTPException(403, "Not allowed to view this order")
    return order


# ---------------------------
# Admin
# ---------------------------
@app.get("/api/admin/orders")
def admin_orders(search: Optional[str] = None, status: str = "All",
                 admin=Depends(require_admin), session: StorefrontSession = Depends(get_session)):
    orders = unwrap(session.orders.get_all_orders())
    filtered = filter_orders(orders, search=search, status=status)
    return {"orders": filtered, "total": len(orders)}


@app.patch("/api/admin/orders/{order_id}")
def admin_update_status(order_id: str, payload: StatusUpdate,
                        admin=Depends(require_admin), session: StorefrontSession = Depends(get_session)):
    result = session.orders.update_order_status(order_id, payload.status)
    if not result.ok and result.error == "Order not found":
        raise HTTPException(404, result.error)
    return unwrap(result)


# ---------------------------
# Auth
# ---------------------------
def session_payload(result: Result, status_code: int) -> dict:
    data = unwrap(result, status_code)
    return {"user": data["user"].model_dump(), "access_token": data["session"].access_token}


@app.post("/api/auth/signup")
def sign_up(payload: SignUpRequest, session: StorefrontSession = Depends(get_session)):
    return session_payload(session.auth.sign_up(payload.email, payload.password, payload.full_name), 400)


@app.post("/api/auth/signin")
def sign_in(payload: Credentials, session: StorefrontSession = Depends(get_session)):
    return session_payload(session.auth.sign_in(payload.email, payload.password), 401)


@app.post("/api/auth/admin")
def admin_login(payload: Credentials, session: StorefrontSession = Depends(get_session)):
    return session_payload(session.auth.admin_login(payload.email, payload.password), 403)


@app.post("/api/auth/signout")
def sign_out(session: StorefrontSession = Depends(get_session)):
    return unwrap(session.auth.sign_out())


@app.get("/api/auth/user")
def current_user(session: StorefrontSession = Depends(get_session)):
    user = session.current_user()
    return {"user": user.model_dump() if user else None, "authenticated": user is not None}


@app.post("/api/auth/reset-password")
def reset_password(payload: ResetRequest, session: StorefrontSession = Depends(get_session)):
    return unwrap(session.auth.reset_password(payload.email))


@app.post("/api/auth/update-password")
def update_password(payload: PasswordUpdate, session: StorefrontSession = Depends(get_session)):
    return unwrap(session.auth.update_password(payload.token, payload.new_password), 400)


# ---------------------------
# Diagnostics
# ---------------------------
@app.get("/test")
def test_database(session: StorefrontSession = Depends(get_session)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if settings.database_url else "❌ Not Set",
        "database_name": "✅ Set" if settings.database_name else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
        "catalog_source": session.products.last_source if hasattr(session.products, "last_source") else None,
        "cart_persisted": session.cart.last_persist_error is None,
    }

    db = database.db
    if db is not None:
        try:
            response["collections"] = db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
        except Exception as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


# ---------------------------
# Seed demo catalog
# ---------------------------
def seed_catalog(db) -> int:
    """Copy the bundled catalog into an empty database. Returns products inserted."""
    if db[TABLES["products"]].count_documents({}) > 0:
        return 0
    db[TABLES["products"]].insert_many([{**p, "_id": p["id"]} for p in PRODUCTS])
    db[TABLES["product_variants"]].insert_many([{**v, "_id": v["id"]} for v in VARIANTS])
    return len(PRODUCTS)


@app.on_event("startup")
def seed_demo():
    if database.db is None:
        logger.info("No database configured, serving the bundled catalog")
        return
    try:
        seeded = seed_catalog(database.db)
        if seeded:
            logger.info("Seeded %d demo products", seeded)
    except Exception as e:
        logger.warning("Demo seed skipped: %s", e)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
