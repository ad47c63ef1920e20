import logging
from typing import Dict, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from config import Settings

logger = logging.getLogger(__name__)

COL_USER = "users"
COL_PRODUCT = "products"
COL_ORDER = "orders"


def get_database(settings: Settings, client: Optional[MongoClient] = None) -> Database:
    """Return the application database; the client connects lazily on first use."""
    client = client or MongoClient(settings.database_url, tz_aware=True, connect=False)
    logger.info("Using MongoDB database %r", settings.database_name)
    return client[settings.database_name]


def ensure_indexes(db: Database) -> None:
    db[COL_USER].create_index([("email", ASCENDING)], unique=True)
    db[COL_PRODUCT].create_index([("name", ASCENDING)], unique=True)
    db[COL_ORDER].create_index([("user", ASCENDING), ("createdAt", DESCENDING)])


def to_obj_id(id_str: str) -> ObjectId:
    # Raises bson.errors.InvalidId for malformed ids; callers decide the status.
    return id_str if isinstance(id_str, ObjectId) else ObjectId(id_str)


def sanitize(doc: Dict) -> Dict:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d
