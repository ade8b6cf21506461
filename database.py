"""
Database helpers

A single MongoClient is shared by the whole process; pymongo pools
connections internally. Handlers receive the database through the
`get_db` dependency so tests can swap in another one.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import settings

logger = logging.getLogger(__name__)

client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=settings.DATABASE_TIMEOUT_MS)
db = client[settings.DATABASE_NAME]


def get_db() -> Database:
    return db


def now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def serialize_document(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = {**doc}
    if doc.get("_id") is not None:
        doc["id"] = str(doc.pop("_id"))
    # Convert nested ObjectIds if any
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["cart"].create_index([("user_id", ASCENDING)], unique=True)
    database["product"].create_index([("name", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)


def check_connection(database: Database) -> None:
    """Raise if the store cannot be reached."""
    database.client.admin.command("ping")
