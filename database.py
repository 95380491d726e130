"""
Database Helper Functions

MongoDB helper functions used by the API endpoints.
`db` is None when DATABASE_URL / DATABASE_NAME are not configured.
"""
import logging
from datetime import datetime, timezone
from typing import Union

from pydantic import BaseModel
from pymongo import MongoClient

from config import DATABASE_URL, DATABASE_NAME

logger = logging.getLogger(__name__)

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000, socketTimeoutMS=45000)
    db = _client[DATABASE_NAME]
    logger.info("MongoDB client created for database %s", DATABASE_NAME)


def ensure_indexes():
    """Create the unique and lookup indexes the API relies on."""
    if db is None:
        logger.warning("Database not configured, skipping index creation")
        return
    db["user"].create_index("email", unique=True)
    db["admin"].create_index("username", unique=True)
    db["coupon"].create_index("code", unique=True)
    db["product"].create_index("productId", unique=True)
    db["product"].create_index("category")
    db["review"].create_index("productId")


def close_client():
    if _client is not None:
        _client.close()


def get_db():
    if db is None:
        raise Exception("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a single document with timestamps and return it (with `_id`)"""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = data.copy()

    now = datetime.now(timezone.utc)
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now

    result = get_db()[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(collection_name: str, filter_dict: dict = None, sort: list = None, limit: int = None):
    """Get documents from collection, newest first unless a sort is given"""
    cursor = get_db()[collection_name].find(filter_dict or {})
    cursor = cursor.sort(sort or [("createdAt", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
