"""
Data sources for catalog and orders.

Every call returns a ``Result`` ({data, error}); failures never cross this
boundary as exceptions. Catalog reads go through ``FallbackProductSource``,
which tries the remote database first and falls back to the bundled catalog.
"""

import functools
import logging
import re
from typing import Iterable, List, Optional

from pymongo import ReturnDocument

from database import MongoBacked, as_object_id, create_document, get_documents, to_public_doc
from sample_data import PRODUCTS, VARIANTS
from schemas import (
    TABLES,
    CustomerInfo,
    OrderStatus,
    Product,
    ProductFilters,
    Result,
    User,
    Variant,
)

logger = logging.getLogger(__name__)


def remote_call(action: str):
    """Run a database operation, folding any failure into ``Result.error``."""
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            if self.db is None:
                return Result.failure("Database not configured")
            try:
                return Result.success(func(self, *args, **kwargs))
            except Exception as e:
                logger.error("Error %s: %s", action, e)
                return Result.failure(e)
        return wrapper
    return decorator


def _id_candidates(value) -> list:
    # ids may be stored as ObjectId, str or int depending on who seeded them
    out = [as_object_id(value), value, str(value)]
    if isinstance(value, str) and value.isdigit():
        out.append(int(value))
    unique = []
    for v in out:
        if v not in unique:
            unique.append(v)
    return unique


def _as_filters(filters) -> ProductFilters:
    if filters is None:
        return ProductFilters()
    if isinstance(filters, ProductFilters):
        return filters
    return ProductFilters(**filters)


# ---------------------------
# Catalog
# ---------------------------
class MongoProductSource(MongoBacked):
    name = "remote"

    @remote_call("fetching products")
    def get_products(self, filters=None) -> List[Product]:
        filters = _as_filters(filters)
        query = {"stock": {"$gt": 0}}
        if filters.category and filters.category != "All":
            query["category"] = filters.category
        if filters.search:
            pattern = {"$regex": re.escape(filters.search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"description": pattern}]
        docs = get_documents(TABLES["products"], query, limit=filters.limit,
                             sort=[("created_at", -1)], database=self.db)
        return [Product.model_validate(to_public_doc(d)) for d in docs]

    @remote_call("fetching product")
    def get_product_by_id(self, product_id) -> Optional[Product]:
        doc = self.db[TABLES["products"]].find_one({"_id": {"$in": _id_candidates(product_id)}})
        return Product.model_validate(to_public_doc(doc)) if doc else None

    @remote_call("fetching featured products")
    def get_featured_products(self, limit: int = 6) -> List[Product]:
        docs = get_documents(TABLES["products"], {"stock": {"$gt": 0}}, limit=limit,
                             sort=[("rating", -1)], database=self.db)
        return [Product.model_validate(to_public_doc(d)) for d in docs]

    @remote_call("fetching variants")
    def get_variants_for_product(self, product_id) -> List[Variant]:
        docs = get_documents(TABLES["product_variants"],
                             {"product_id": {"$in": _id_candidates(product_id)}}, database=self.db)
        return [Variant.model_validate(to_public_doc(d)) for d in docs]

    @remote_call("fetching related products")
    def get_related_products(self, product: Product, limit: int = 4) -> List[Product]:
        docs = get_documents(TABLES["products"], {"category": product.category, "stock": {"$gt": 0}},
                             database=self.db)
        related = [Product.model_validate(to_public_doc(d)) for d in docs]
        return [p for p in related if str(p.id) != str(product.id)][:limit]

    @remote_call("updating stock")
    def update_stock(self, product_id, stock: int) -> Optional[Product]:
        doc = self.db[TABLES["products"]].find_one_and_update(
            {"_id": {"$in": _id_candidates(product_id)}},
            {"$set": {"stock": stock}},
            return_document=ReturnDocument.AFTER,
        )
        return Product.model_validate(to_public_doc(doc)) if doc else None


class StaticProductSource:
    """In-memory catalog. Same interface as the remote source."""

    name = "static"

    def __init__(self, products: Optional[Iterable[dict]] = None, variants: Optional[Iterable[dict]] = None):
        self.products = [Product.model_validate(p) for p in (PRODUCTS if products is None else products)]
        self.variants = [Variant.model_validate(v) for v in (VARIANTS if variants is None else variants)]

    def get_products(self, filters=None) -> Result:
        filters = _as_filters(filters)
        found = [p for p in self.products if p.stock > 0]
        if filters.category and filters.category != "All":
            found = [p for p in found if p.category == filters.category]
        if filters.search:
            needle = filters.search.lower()
            found = [p for p in found
                     if needle in p.name.lower() or needle in (p.description or "").lower()]
        if filters.limit:
            found = found[:filters.limit]
        return Result.success(found)

    def get_product_by_id(self, product_id) -> Result:
        for p in self.products:
            if str(p.id) == str(product_id):
                return Result.success(p)
        return Result.success(None)

    def get_featured_products(self, limit: int = 6) -> Result:
        in_stock = [p for p in self.products if p.stock > 0]
        return Result.success(sorted(in_stock, key=lambda p: p.rating, reverse=True)[:limit])

    def get_variants_for_product(self, product_id) -> Result:
        return Result.success([v for v in self.variants if str(v.product_id) == str(product_id)])

    def get_related_products(self, product: Product, limit: int = 4) -> Result:
        related = [p for p in self.products
                   if p.category == product.category and str(p.id) != str(product.id) and p.stock > 0]
        return Result.success(related[:limit])

    def update_stock(self, product_id, stock: int) -> Result:
        for i, p in enumerate(self.products):
            if str(p.id) == str(product_id):
                self.products[i] = p.model_copy(update={"stock": stock})
                return Result.success(self.products[i])
        return Result.success(None)


class FallbackProductSource:
    """Try each source in order and return the first result without an error."""

    def __init__(self, *sources):
        if not sources:
            raise ValueError("at least one source is required")
        self.sources = sources
        self.last_source = None

    def _first(self, method: str, *args, **kwargs) -> Result:
        result = None
        for source in self.sources:
            result = getattr(source, method)(*args, **kwargs)
            if result.ok:
                self.last_source = getattr(source, "name", source.__class__.__name__)
                return result
            logger.warning("%s failed on %s source: %s", method,
                           getattr(source, "name", source.__class__.__name__), result.error)
        return result

    def get_products(self, filters=None) -> Result:
        return self._first("get_products", filters)

    def get_product_by_id(self, product_id) -> Result:
        return self._first("get_product_by_id", product_id)

    def get_featured_products(self, limit: int = 6) -> Result:
        return self._first("get_featured_products", limit)

    def get_variants_for_product(self, product_id) -> Result:
        return self._first("get_variants_for_product", product_id)

    def get_related_products(self, product: Product, limit: int = 4) -> Result:
        return self._first("get_related_products", product, limit)

    def update_stock(self, product_id, stock: int) -> Result:
        return self._first("update_stock", product_id, stock)


# ---------------------------
# Orders
# ---------------------------
def _line_to_order_item(order_id: str, item) -> dict:
    return {
        "order_id": order_id,
        "product_id": item.product_id,
        "variant_id": getattr(item, "variant_id", None),
        "attributes": getattr(item, "attributes", None),
        "name": item.name,
        "quantity": item.quantity,
        "price": item.price,
    }


class MongoOrderSource(MongoBacked):

    def _with_items(self, order: dict) -> dict:
        order = to_public_doc(order)
        items = get_documents(TABLES["order_items"], {"order_id": order["id"]}, database=self.db)
        order["order_items"] = [to_public_doc(i) for i in items]
        return order

    @remote_call("creating order")
    def create_order(self, customer_info: CustomerInfo, line_items: list,
                     user: Optional[User] = None, total: Optional[float] = None) -> dict:
        if not line_items:
            raise ValueError("Cannot create an order without items")
        if total is None:
            total = round(sum(i.quantity * i.price for i in line_items), 2)

        order_doc = {
            "customer_name": customer_info.name,
            "customer_email": customer_info.email,
            "customer_phone": customer_info.phone,
            "address": customer_info.address,
            "payment_method": customer_info.payment_method.value,
            "notes": customer_info.notes,
            "total": total,
            "status": OrderStatus.PENDING.value,
            "user_id": user.id if user else None,
        }
        order_id = create_document(TABLES["orders"], order_doc, database=self.db)

        items_data = [_line_to_order_item(order_id, item) for item in line_items]
        try:
            self.db[TABLES["order_items"]].insert_many(items_data)
        except Exception:
            # no half-written orders
            self.db[TABLES["orders"]].delete_one({"_id": as_object_id(order_id)})
            raise

        for item in line_items:
            self.db[TABLES["products"]].update_one(
                {"_id": {"$in": _id_candidates(item.product_id)}},
                {"$inc": {"stock": -item.quantity}},
            )
            variant_id = getattr(item, "variant_id", None)
            if variant_id is not None:
                self.db[TABLES["product_variants"]].update_one(
                    {"_id": {"$in": _id_candidates(variant_id)}},
                    {"$inc": {"stock": -item.quantity}},
                )

        order = self.db[TABLES["orders"]].find_one({"_id": as_object_id(order_id)})
        return {
            "order": to_public_doc(order),
            "items": [to_public_doc(i) for i in items_data],
        }

    @remote_call("fetching order")
    def get_order(self, order_id) -> Optional[dict]:
        order = self.db[TABLES["orders"]].find_one({"_id": {"$in": _id_candidates(order_id)}})
        return self._with_items(order) if order else None

    @remote_call("fetching user orders")
    def get_user_orders(self, user_id: str) -> List[dict]:
        orders = get_documents(TABLES["orders"], {"user_id": user_id},
                               sort=[("created_at", -1)], database=self.db)
        return [self._with_items(o) for o in orders]

    @remote_call("fetching orders")
    def get_all_orders(self) -> List[dict]:
        orders = get_documents(TABLES["orders"], sort=[("created_at", -1)], database=self.db)
        return [self._with_items(o) for o in orders]

    @remote_call("updating order status")
    def update_order_status(self, order_id, status) -> dict:
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValueError(f"Invalid order status: {status}") from None
        order = self.db[TABLES["orders"]].find_one_and_update(
            {"_id": {"$in": _id_candidates(order_id)}},
            {"$set": {"status": status.value}},
            return_document=ReturnDocument.AFTER,
        )
        if order is None:
            raise LookupError("Order not found")
        return to_public_doc(order)


def filter_orders(orders: List[dict], search: Optional[str] = None, status: Optional[str] = "All") -> List[dict]:
    """Admin dashboard filter: free-text over name/email/id, then exact status."""
    filtered = orders
    if search:
        needle = search.lower()
        filtered = [
            o for o in filtered
            if needle in (o.get("customer_name") or "").lower()
            or needle in (o.get("customer_email") or "").lower()
            or needle in str(o.get("id", ""))
        ]
    if status and status != "All":
        filtered = [o for o in filtered if o.get("status") == status]
    return filtered
