import mongomock
import pytest

from datasource import MongoOrderSource, StaticProductSource
from sample_data import PRODUCTS, VARIANTS
from schemas import Product, Variant
from session import StorefrontSession
from storage import MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def mongo_db():
    client = mongomock.MongoClient()
    yield client["storefront_test"]
    client.close()


@pytest.fixture
def bear():
    return Product.model_validate(PRODUCTS[0])


@pytest.fixture
def bear_variants():
    return [Variant.model_validate(v) for v in VARIANTS if v["product_id"] == 1]


@pytest.fixture
def session(storage, mongo_db):
    s = StorefrontSession(
        storage,
        products=StaticProductSource(),
        orders=MongoOrderSource(mongo_db),
        db=mongo_db,
    ).load()
    yield s
    s.close()
