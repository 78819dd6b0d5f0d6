"""
Storefront Schemas

Pydantic models shared by the catalog, the cart/wishlist stores and the
order pipeline.

Collections backing the remote models (lowercase of the purpose):
- Product -> "products" collection
- Variant -> "product_variants" collection
- Order -> "orders" collection, items in "order_items"
- User -> "users" collection
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import quote

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, field_validator

ProductId = Union[int, str]
VariantId = Union[int, str]

TABLES = {
    "products": "products",
    "product_variants": "product_variants",
    "orders": "orders",
    "order_items": "order_items",
    "users": "users",
    "password_resets": "password_resets",
}


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentMethod(str, Enum):
    COD = "Cash on Delivery"
    BANK_TRANSFER = "Bank Transfer"


# ---------------------------
# Catalog
# ---------------------------
class Product(BaseModel):
    """
    Products collection schema
    Collection name: "products"
    """
    id: ProductId
    name: str = Field(..., description="Product name")
    price: float = Field(..., ge=0, description="Base price in dollars")
    category: str = Field("General", description="Product category")
    image: Optional[str] = Field(None, description="Primary image URL")
    images: List[str] = Field(default_factory=list, description="Gallery image URLs")
    description: Optional[str] = None
    long_description: Optional[str] = None
    stock: int = Field(0, ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    review_count: int = Field(0, ge=0)


class Variant(BaseModel):
    """
    Product variants collection schema
    Collection name: "product_variants"
    """
    id: VariantId
    product_id: ProductId
    sku: Optional[str] = None
    attributes: Dict[str, str] = Field(..., description="Axis name -> value, e.g. {'Color': 'Red'}")
    price: Optional[float] = Field(None, gt=0, description="Overrides the product price")
    image: Optional[str] = Field(None, description="Overrides the product image")
    stock: int = Field(0, ge=0)
    active: bool = True

    @field_validator("attributes")
    @classmethod
    def attributes_not_empty(cls, v):
        if not v:
            raise ValueError("At least one attribute is required")
        return v

    @property
    def selectable(self) -> bool:
        return self.active and self.stock > 0


class ProductFilters(BaseModel):
    category: Optional[str] = None
    search: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)


# ---------------------------
# Client-side collections
# ---------------------------
class PlainItem(BaseModel):
    """Cart line for a product sold without variants."""
    kind: Literal["plain"] = "plain"
    product_id: ProductId
    name: str
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)

    @property
    def identity(self) -> Tuple[str, Optional[str]]:
        return line_identity(self.product_id)

    @property
    def key(self) -> str:
        return line_key(self.product_id)


class VariantItem(BaseModel):
    """Cart line bound to one concrete variant, with the chosen attributes."""
    kind: Literal["variant"] = "variant"
    product_id: ProductId
    variant_id: VariantId
    name: str
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    attributes: Dict[str, str] = Field(default_factory=dict)

    @property
    def identity(self) -> Tuple[str, Optional[str]]:
        return line_identity(self.product_id, self.variant_id)

    @property
    def key(self) -> str:
        return line_key(self.product_id, self.variant_id)


CartLineItem = Annotated[Union[PlainItem, VariantItem], Field(discriminator="kind")]
CartItems = TypeAdapter(List[CartLineItem])


class WishlistItem(BaseModel):
    product_id: ProductId
    name: str
    price: float = Field(..., ge=0)
    image: Optional[str] = None
    category: Optional[str] = None
    rating: Optional[float] = None


WishlistItems = TypeAdapter(List[WishlistItem])


def line_identity(product_id: ProductId, variant_id: Optional[VariantId] = None) -> Tuple[str, Optional[str]]:
    """Composite identity of a cart line: (product id, variant id or None), compared as strings."""
    return str(product_id), None if variant_id is None else str(variant_id)


def line_key(product_id: ProductId, variant_id: Optional[VariantId] = None) -> str:
    """String form of the line identity for URLs.

    Each part is percent-encoded, so an id containing ':' cannot collide
    with a product:variant pair.
    """
    product_part = quote(str(product_id), safe="")
    if variant_id is None:
        return product_part
    return f"{product_part}:{quote(str(variant_id), safe='')}"


# ---------------------------
# Orders
# ---------------------------
class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=2, description="Name must be at least 2 characters")
    email: EmailStr
    phone: Optional[str] = None
    address: str = Field(..., min_length=10, description="Complete shipping address")
    payment_method: PaymentMethod
    notes: Optional[str] = None


class OrderItem(BaseModel):
    product_id: ProductId
    variant_id: Optional[VariantId] = None
    attributes: Optional[Dict[str, str]] = None
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class User(BaseModel):
    """
    Users collection schema
    Collection name: "users"
    """
    id: str
    email: EmailStr
    full_name: Optional[str] = None
    role: Literal["customer", "admin"] = "customer"


# ---------------------------
# Collaborator envelope
# ---------------------------
class Result(BaseModel):
    """Uniform ``{data, error}`` shape returned by every backend call."""
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None) -> "Result":
        return cls(data=data)

    @classmethod
    def failure(cls, error: Any) -> "Result":
        return cls(error=str(error) or error.__class__.__name__)
