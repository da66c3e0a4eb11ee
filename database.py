"""
Database helpers

One MongoClient is opened at boot by connect_db() and its database handle is
stored on app.state. Handlers reach it through the get_db dependency and pass
it to the helpers below. Collection name is the lowercase schema class name.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException, Request
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings

logger = logging.getLogger(__name__)


def connect_db(settings: Settings) -> Database:
    """Open the process-wide connection or terminate the process.

    The service has no offline mode, so a failed connection exits with
    status 1 after logging the cause.
    """
    try:
        client = MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
        db = client.get_default_database(default=settings.database_name)
        host = client.address[0] if client.address else settings.mongo_uri
        logger.info("MongoDB Connected: %s", host)
        return db
    except PyMongoError as e:
        logger.error("Error: %s", e)
        sys.exit(1)


def ensure_indexes(db: Database) -> None:
    db["user"].create_index("email", unique=True)


def get_db(request: Request) -> Database:
    return request.app.state.db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping created_at/updated_at. Returns the new id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = db[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[dict] = None,
    limit: Optional[int] = None,
    projection: Optional[dict] = None,
) -> List[dict]:
    cursor = db[collection_name].find(filter_dict or {}, projection).sort("created_at", -1)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(db: Database, collection_name: str, doc_id: str, projection: Optional[dict] = None) -> Optional[dict]:
    return db[collection_name].find_one({"_id": ObjectId(doc_id)}, projection)


def update_document(
    db: Database,
    collection_name: str,
    doc_id: str,
    changes: Dict[str, Any],
    projection: Optional[dict] = None,
) -> Optional[dict]:
    """Apply $set changes (refreshing updated_at) and return the updated document."""
    res = db[collection_name].update_one(
        {"_id": ObjectId(doc_id)},
        {"$set": {**changes, "updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        return None
    return get_document(db, collection_name, doc_id, projection)


def delete_document(db: Database, collection_name: str, doc_id: str) -> bool:
    res = db[collection_name].delete_one({"_id": ObjectId(doc_id)})
    return res.deleted_count > 0


def to_public(doc: Optional[dict]) -> Optional[dict]:
    """Render _id as a string id for the wire."""
    if doc is None:
        return doc
    doc["id"] = str(doc.pop("_id", ""))
    return doc


def check_object_id(param: str = "id"):
    """Build a guard rejecting a path parameter that is not a valid ObjectId."""

    def guard(request: Request) -> None:
        value = request.path_params.get(param, "")
        if not ObjectId.is_valid(value):
            raise HTTPException(status_code=404, detail=f"Invalid ObjectId of: {value}")

    return guard
