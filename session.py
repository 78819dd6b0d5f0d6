"""
One shopper session: storage, stores, data sources and auth wired together.
"""

import logging
from typing import Optional

from auth import SIGNED_OUT, AuthService
from datasource import FallbackProductSource, MongoOrderSource, MongoProductSource, StaticProductSource
from settings import settings
from storage import JsonFileStorage
from store import CartStore, WishlistStore

logger = logging.getLogger(__name__)


class StorefrontSession:
    def __init__(self, storage, products=None, orders=None, auth=None, db=None):
        self.storage = storage
        self.products = products or FallbackProductSource(MongoProductSource(db), StaticProductSource())
        self.orders = orders or MongoOrderSource(db)
        self.auth = auth or AuthService(db, storage=storage)
        self.cart = CartStore(storage)
        self.wishlist = WishlistStore(storage)
        self.cart_count = 0
        self._unsubscribe = [
            self.cart.subscribe(self._refresh_badge),
            self.auth.on_auth_state_change(self._on_auth_event),
        ]

    def load(self) -> "StorefrontSession":
        self.cart.load()
        self.wishlist.load()
        self._refresh_badge()
        return self

    def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self.cart.close()
        self.wishlist.close()

    def _refresh_badge(self, event: Optional[str] = None) -> None:
        # pull the latest snapshot rather than trusting the event
        self.cart_count = self.cart.item_count()

    def _on_auth_event(self, event, session) -> None:
        if event == SIGNED_OUT:
            logger.info("Signed out, local cart and wishlist cleared")

    def current_user(self):
        result = self.auth.get_user()
        return result.data if result.ok else None


def create_session(storage_path: Optional[str] = None) -> StorefrontSession:
    storage = JsonFileStorage(storage_path or settings.storage_path)
    return StorefrontSession(storage).load()
