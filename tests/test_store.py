import pytest

from schemas import CartItems, PlainItem, Product, Variant, VariantItem
from storage import MemoryStorage, StorageError
from store import CART_KEY, CART_UPDATED, WISHLIST_KEY, CartStore, WishlistStore


@pytest.fixture
def cart(storage):
    store = CartStore(storage)
    store.load()
    return store


@pytest.fixture
def wishlist(storage):
    store = WishlistStore(storage)
    store.load()
    return store


@pytest.fixture
def red_small():
    return Variant(id=101, product_id=1, attributes={"Color": "Red", "Size": "S"}, stock=3)


@pytest.fixture
def red_medium():
    return Variant(id=102, product_id=1, attributes={"Color": "Red", "Size": "M"}, stock=3, price=29.99)


class FailingStorage(MemoryStorage):
    def set_item(self, key, value, origin=None):
        raise StorageError("quota exceeded")


def test_add_update_remove_scenario(cart, bear):
    cart.add_to_cart(bear)
    assert cart.total() == pytest.approx(24.99)

    cart.add_to_cart(bear, quantity=2)
    assert len(cart) == 1
    assert cart.items[0].quantity == 3
    assert cart.total() == pytest.approx(74.97)

    cart.update_quantity("1", 0)
    assert len(cart) == 0
    assert cart.total() == 0


def test_same_identity_merges(cart, bear, red_small):
    cart.add_to_cart(bear, red_small, red_small.attributes, 1)
    cart.add_to_cart(bear, red_small, red_small.attributes, 1)
    assert len(cart) == 1
    assert cart.items[0].quantity == 2


def test_variants_of_one_product_are_separate_lines(cart, bear, red_small, red_medium):
    cart.add_to_cart(bear)
    cart.add_to_cart(bear, red_small)
    cart.add_to_cart(bear, red_medium)
    assert [item.key for item in cart.items] == ["1", "1:101", "1:102"]
    assert isinstance(cart.items[0], PlainItem)
    assert isinstance(cart.items[1], VariantItem)


def test_separator_in_product_id_does_not_merge(cart, bear, red_small):
    odd = Product(id="1:101", name="Lookalike", price=99.0, stock=5)
    cart.add_to_cart(bear, red_small)
    cart.add_to_cart(odd)

    assert len(cart) == 2
    assert [item.identity for item in cart.items] == [("1", "101"), ("1:101", None)]
    assert cart.get("1%3A101").price == 99.0
    assert cart.get("1:101").quantity == 1

    cart.remove_from_cart("1%3A101")
    assert [item.key for item in cart.items] == ["1:101"]


def test_variant_price_override(cart, bear, red_small, red_medium):
    cart.add_to_cart(bear, red_small)
    cart.add_to_cart(bear, red_medium)
    assert cart.get("1:101").price == bear.price
    assert cart.get("1:102").price == 29.99
    assert cart.get("1:102").attributes == {"Color": "Red", "Size": "M"}


def test_merge_keeps_add_time_snapshot(cart, bear):
    cart.add_to_cart(bear)
    repriced = bear.model_copy(update={"price": 99.0, "name": "Renamed"})
    cart.add_to_cart(repriced)
    item = cart.get("1")
    assert item.quantity == 2
    assert item.price == bear.price
    assert item.name == bear.name


def test_update_quantity_is_absolute(cart, bear):
    cart.add_to_cart(bear, quantity=5)
    cart.update_quantity("1", 2)
    assert cart.get("1").quantity == 2


def test_update_quantity_zero_matches_remove(storage, bear):
    a, b = CartStore(MemoryStorage()), CartStore(MemoryStorage())
    for store in (a, b):
        store.add_to_cart(bear)
    a.update_quantity("1", 0)
    b.remove_from_cart("1")
    a.update_quantity("missing", 0)
    b.remove_from_cart("missing")
    assert a.items == b.items == []


def test_negative_quantity_rejected(cart, bear):
    cart.add_to_cart(bear)
    with pytest.raises(ValueError):
        cart.update_quantity("1", -1)
    with pytest.raises(ValueError):
        cart.add_to_cart(bear, quantity=0)


def test_absent_identity_is_noop(cart, bear):
    cart.add_to_cart(bear)
    cart.remove_from_cart("nope")
    cart.update_quantity("nope", 4)
    assert [i.key for i in cart.items] == ["1"]


def test_total_tracks_every_mutation(cart, bear, red_medium):
    cart.add_to_cart(bear, quantity=2)
    cart.add_to_cart(bear, red_medium, quantity=3)
    cart.update_quantity("1", 1)
    expected = sum(i.quantity * i.price for i in cart.items)
    assert cart.total() == pytest.approx(expected)
    assert cart.item_count() == 4


def test_clear_cart(cart, bear, storage):
    cart.add_to_cart(bear)
    cart.clear_cart()
    assert cart.items == []
    assert storage.get_item(CART_KEY) == "[]"


def test_write_through_round_trip(storage, bear, red_small):
    cart = CartStore(storage)
    cart.add_to_cart(bear)
    cart.add_to_cart(bear, red_small, quantity=2)

    restored = CartStore(storage)
    restored.load()
    assert restored.items == cart.items
    assert CartItems.validate_json(storage.get_item(CART_KEY)) == cart.items


def test_malformed_blob_loads_empty(storage):
    storage.set_item(CART_KEY, "{not json")
    cart = CartStore(storage)
    cart.load()
    assert cart.items == []


def test_wrong_shape_blob_loads_empty(storage):
    storage.set_item(CART_KEY, '[{"kind": "plain", "name": "no id"}]')
    cart = CartStore(storage)
    cart.load()
    assert cart.items == []


def test_persist_failure_keeps_memory_state(bear):
    cart = CartStore(FailingStorage())
    events = []
    cart.subscribe(events.append)
    cart.add_to_cart(bear)
    assert cart.items[0].quantity == 1
    assert cart.last_persist_error == "quota exceeded"
    assert events == [CART_UPDATED]


def test_subscribers_notified_after_persist(cart, bear, storage):
    seen = []
    cart.subscribe(lambda event: seen.append((event, storage.get_item(CART_KEY) is not None)))
    cart.add_to_cart(bear)
    assert seen == [(CART_UPDATED, True)]


def test_unsubscribe(cart, bear):
    seen = []
    unsubscribe = cart.subscribe(seen.append)
    unsubscribe()
    cart.add_to_cart(bear)
    assert seen == []


def test_reloads_when_another_writer_changes_storage(storage, bear):
    first, second = CartStore(storage), CartStore(storage)
    seen = []
    second.subscribe(seen.append)
    first.add_to_cart(bear, quantity=2)
    assert second.items == first.items
    assert seen == [CART_UPDATED]

    storage.remove_item(CART_KEY)
    assert first.items == []


def test_items_snapshot_is_detached(cart, bear):
    cart.add_to_cart(bear)
    snapshot = cart.items
    snapshot[0].quantity = 50
    assert cart.get("1").quantity == 1


def test_accepts_plain_mapping_products(cart):
    cart.add_to_cart({"id": "abc", "name": "Mug", "price": 5, "images": ["m.jpg"]})
    assert cart.get("abc").image == "m.jpg"


def test_wishlist_has_set_semantics(wishlist, bear):
    assert wishlist.add_to_wishlist(bear)
    assert not wishlist.add_to_wishlist(bear)
    assert not wishlist.add_to_wishlist(bear.model_copy(update={"id": "1"}))
    assert len(wishlist) == 1
    assert wishlist.is_in_wishlist(1)


def test_wishlist_remove_toggle_clear(wishlist, bear, storage):
    other = Product(id=2, name="Pyramid", price=45)
    wishlist.add_to_wishlist(bear)
    assert wishlist.toggle(other) is True
    assert wishlist.toggle(other) is False
    wishlist.remove_from_wishlist(99)
    assert [i.product_id for i in wishlist.items] == [1]
    wishlist.clear_wishlist()
    assert storage.get_item(WISHLIST_KEY) == "[]"


def test_wishlist_malformed_blob_loads_empty(storage):
    storage.set_item(WISHLIST_KEY, "42")
    wishlist = WishlistStore(storage)
    wishlist.load()
    assert wishlist.items == []
