"""
Cart and wishlist stores.

Each store owns the in-memory collection for the session, writes the whole
collection through to storage after every mutation, then notifies its
subscribers. Subscribers receive only the event name and read the current
snapshot themselves.
"""

import logging
import uuid
from collections.abc import Mapping
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from schemas import (
    CartItems,
    PlainItem,
    ProductId,
    Variant,
    VariantItem,
    WishlistItem,
    WishlistItems,
    line_identity,
)
from storage import StorageError

logger = logging.getLogger(__name__)

CART_KEY = "storefront_cart"
WISHLIST_KEY = "storefront_wishlist"

CART_UPDATED = "cart_updated"
WISHLIST_UPDATED = "wishlist_updated"

Subscriber = Callable[[str], None]


def _field(obj, name, default=None):
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _primary_image(product) -> Optional[str]:
    image = _field(product, "image")
    if image:
        return image
    images = _field(product, "images") or []
    return images[0] if images else None


class _PersistentCollection:
    event = "updated"

    def __init__(self, storage, key: str, adapter):
        self.storage = storage
        self.key = key
        self._adapter = adapter
        self._items: List = []
        self._subscribers: List[Subscriber] = []
        self.origin = uuid.uuid4().hex
        self.last_persist_error: Optional[str] = None
        self._unlisten = storage.subscribe(self._on_storage_change)

    # -- lifecycle --
    def load(self) -> None:
        """Read the persisted collection; anything unreadable is discarded whole."""
        raw = self.storage.get_item(self.key)
        if raw is None:
            self._items = []
            return
        try:
            self._items = list(self._adapter.validate_json(raw))
        except ValidationError as e:
            logger.warning("Discarding malformed %s data: %s", self.key, e.errors()[:1])
            self._items = []

    def persist(self) -> bool:
        blob = self._adapter.dump_json(self._items).decode("utf-8")
        try:
            self.storage.set_item(self.key, blob, origin=self.origin)
        except StorageError as e:
            # in-memory state stays authoritative
            logger.warning("Could not persist %s: %s", self.key, e)
            self.last_persist_error = str(e)
            return False
        self.last_persist_error = None
        return True

    def close(self) -> None:
        self._unlisten()

    # -- observers --
    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self.event)

    def _commit(self) -> None:
        self.persist()
        self._notify()

    def _on_storage_change(self, key: str, origin: Optional[str]) -> None:
        if key != self.key or origin == self.origin:
            return
        logger.debug("%s changed by another writer, reloading", self.key)
        self.load()
        self._notify()

    # -- reads --
    @property
    def items(self) -> List:
        return [item.model_copy(deep=True) for item in self._items]

    def __len__(self) -> int:
        return len(self._items)


class CartStore(_PersistentCollection):
    event = CART_UPDATED

    def __init__(self, storage, key: str = CART_KEY):
        super().__init__(storage, key, CartItems)

    def get(self, key: str):
        for item in self._items:
            if item.key == key:
                return item.model_copy(deep=True)
        return None

    def add_to_cart(self, product, variant: Optional[Variant] = None,
                    attributes: Optional[Dict[str, str]] = None, quantity: int = 1):
        if quantity < 1:
            raise ValueError("quantity must be a positive integer")

        product_id = _field(product, "id")
        identity = line_identity(product_id, variant.id if variant is not None else None)
        for item in self._items:
            if item.identity == identity:
                # price and attributes keep their add-time snapshot
                item.quantity += quantity
                self._commit()
                return item.model_copy(deep=True)

        name = _field(product, "name")
        base_price = float(_field(product, "price", 0))
        if variant is None:
            item = PlainItem(
                product_id=product_id,
                name=name,
                image=_primary_image(product),
                price=base_price,
                quantity=quantity,
            )
        else:
            item = VariantItem(
                product_id=product_id,
                variant_id=variant.id,
                name=name,
                image=variant.image or _primary_image(product),
                price=variant.price if variant.price is not None else base_price,
                quantity=quantity,
                attributes=dict(attributes or variant.attributes),
            )
        self._items.append(item)
        self._commit()
        return item.model_copy(deep=True)

    def update_quantity(self, key: str, quantity: int) -> None:
        """Set an absolute quantity. Zero removes the line; absent keys are ignored."""
        if quantity < 0:
            raise ValueError("quantity cannot be negative")
        if quantity == 0:
            self.remove_from_cart(key)
            return
        for item in self._items:
            if item.key == key:
                item.quantity = quantity
                self._commit()
                return

    def remove_from_cart(self, key: str) -> None:
        remaining = [item for item in self._items if item.key != key]
        if len(remaining) == len(self._items):
            return
        self._items = remaining
        self._commit()

    def clear_cart(self) -> None:
        self._items = []
        self._commit()

    def total(self) -> float:
        return round(sum(item.quantity * item.price for item in self._items), 2)

    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)


class WishlistStore(_PersistentCollection):
    event = WISHLIST_UPDATED

    def __init__(self, storage, key: str = WISHLIST_KEY):
        super().__init__(storage, key, WishlistItems)

    def is_in_wishlist(self, product_id: ProductId) -> bool:
        return any(str(item.product_id) == str(product_id) for item in self._items)

    def add_to_wishlist(self, product) -> bool:
        """Add a product once. Returns False when it was already there."""
        product_id = _field(product, "id")
        if self.is_in_wishlist(product_id):
            return False
        self._items.append(WishlistItem(
            product_id=product_id,
            name=_field(product, "name"),
            price=float(_field(product, "price", 0)),
            image=_primary_image(product),
            category=_field(product, "category"),
            rating=_field(product, "rating"),
        ))
        self._commit()
        return True

    def remove_from_wishlist(self, product_id: ProductId) -> None:
        remaining = [item for item in self._items if str(item.product_id) != str(product_id)]
        if len(remaining) == len(self._items):
            return
        self._items = remaining
        self._commit()

    def toggle(self, product) -> bool:
        """Flip membership; returns whether the product is now in the wishlist."""
        product_id = _field(product, "id")
        if self.is_in_wishlist(product_id):
            self.remove_from_wishlist(product_id)
            return False
        self.add_to_wishlist(product)
        return True

    def clear_wishlist(self) -> None:
        self._items = []
        self._commit()
