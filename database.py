"""
Database Helper Functions

MongoDB handle built from the DATABASE_URL / DATABASE_NAME environment
variables, plus the small document helpers the data sources use.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

from settings import settings

logger = logging.getLogger(__name__)

_client = None
db = None

if settings.database_url and settings.database_name:
    try:
        _client = MongoClient(settings.database_url, serverSelectionTimeoutMS=3000)
        db = _client[settings.database_name]
    except Exception as e:
        logger.error("Could not create MongoDB client: %s", e)
        db = None


def create_document(collection_name: str, data: Union[BaseModel, dict], database=None) -> str:
    """Insert a document with timestamps and return its id as a string."""
    database = database if database is not None else db
    if database is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    if isinstance(data, BaseModel):
        data_dict = data.model_dump(mode="json")
    else:
        data_dict = data.copy()

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None,
                  sort: Optional[list] = None, database=None) -> list:
    database = database if database is not None else db
    if database is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")

    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_public_doc(doc: dict):
    if not doc:
        return doc
    d = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            d[k] = str(v)
        elif isinstance(v, datetime):
            d[k] = v.isoformat()
        else:
            d[k] = v
    if "_id" in d:
        _id = d.pop("_id")
        d.setdefault("id", _id)
    return d


def as_object_id(value):
    """ObjectId for hex strings, the value untouched otherwise (integer ids)."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


class MongoBacked:
    """Holds an injected database handle, or follows the module-level ``db``."""

    def __init__(self, db=None):
        self._db = db

    @property
    def db(self):
        return self._db if self._db is not None else db
