# backend/mongo.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from bson import ObjectId
from flask_pymongo import PyMongo
from pymongo import ASCENDING, DESCENDING

mongo = PyMongo()

logger = logging.getLogger(__name__)


def init_mongo(app):
    """
    Initializes Flask-PyMongo.
    Requires app.config["MONGO_URI"]; an empty URI leaves mongo
    uninitialized so tests can attach their own database to `mongo.db`.
    """
    if not app.config.get("MONGO_URI"):
        logger.warning("MONGO_URI not set. Mongo will not be initialized.")
        return mongo

    mongo.init_app(app)
    try:
        ensure_indexes(mongo.db)
        logger.info("Mongo initialized")
    except Exception as e:
        # server may be unreachable at boot; queries will surface the error later
        logger.warning("Mongo index creation failed: %s", e)

    return mongo


def ensure_indexes(db):
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.users.create_index([("role", ASCENDING), ("createdAt", DESCENDING)])

    db.grains.create_index([("grainType", ASCENDING), ("location", ASCENDING), ("status", ASCENDING)])
    db.grains.create_index([("farmerId", ASCENDING)])
    db.grains.create_index([("pricePerQuintal", ASCENDING)])
    db.grains.create_index([("createdAt", DESCENDING)])

    db.deals.create_index([("farmerId", ASCENDING), ("status", ASCENDING)])
    db.deals.create_index([("buyerId", ASCENDING), ("status", ASCENDING)])
    db.deals.create_index([("grainId", ASCENDING)])
    db.deals.create_index([("paymentId", ASCENDING)])
    db.deals.create_index([("createdAt", DESCENDING)])

    db.contacts.create_index([("toUserId", ASCENDING), ("read", ASCENDING)])
    db.contacts.create_index([("fromUserId", ASCENDING)])
    db.contacts.create_index([("grainId", ASCENDING)])
    db.contacts.create_index([("createdAt", DESCENDING)])


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an opaque id string; None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def _jsonable(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def public_doc(doc: Optional[dict], exclude: tuple = ()) -> Optional[dict]:
    """JSON-ready copy of a stored document with `_id` exposed as string `id`."""
    if doc is None:
        return None
    out = {k: _jsonable(v) for k, v in doc.items() if k != "_id" and k not in exclude}
    out["id"] = str(doc["_id"])
    return out
