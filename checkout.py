"""
Checkout pricing and order submission.

The cart is only cleared once the order has been stored; any failure leaves
it intact so the shopper can retry.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from schemas import CustomerInfo, Result, User

logger = logging.getLogger(__name__)

FREE_SHIPPING_THRESHOLD = 50.0
SHIPPING_FEE = 9.99
TAX_RATE = 0.08
PROMO_CODES = {"WELCOME10": 0.10}


class CheckoutSummary(BaseModel):
    item_count: int
    subtotal: float
    promo_code: Optional[str] = None
    discount: float = 0.0
    shipping: float
    tax: float
    total: float


def promo_rate(code: Optional[str]) -> float:
    if not code:
        return 0.0
    return PROMO_CODES.get(code.strip().upper(), 0.0)


def summarize(items: List, promo_code: Optional[str] = None) -> CheckoutSummary:
    subtotal = sum(i.quantity * i.price for i in items)
    rate = promo_rate(promo_code)
    discount = subtotal * rate
    discounted = subtotal - discount
    if not items or discounted > FREE_SHIPPING_THRESHOLD:
        shipping = 0.0
    else:
        shipping = SHIPPING_FEE
    tax = discounted * TAX_RATE
    return CheckoutSummary(
        item_count=sum(i.quantity for i in items),
        subtotal=round(subtotal, 2),
        promo_code=promo_code.strip().upper() if rate else None,
        discount=round(discount, 2),
        shipping=shipping,
        tax=round(tax, 2),
        total=round(discounted + shipping + tax, 2),
    )


def place_order(cart, orders, customer: CustomerInfo, user: Optional[User] = None,
                promo_code: Optional[str] = None) -> Result:
    """Submit the cart snapshot as an order, clearing the cart on success only."""
    items = cart.items
    if not items:
        return Result.failure("Your cart is empty")

    summary = summarize(items, promo_code)
    result = orders.create_order(customer, items, user=user, total=summary.total)
    if not result.ok:
        logger.warning("Order submission failed, cart kept: %s", result.error)
        return result

    cart.clear_cart()
    order = result.data["order"]
    logger.info("Order %s placed for %s (%s)", order.get("id"), customer.email, summary.total)
    return Result.success({**result.data, "summary": summary})
