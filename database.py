"""
MongoDB helpers.

Configured from DATABASE_URL / DATABASE_NAME. When DATABASE_URL is not set
``db`` is None and every helper raises RuntimeError.

Orders are stored as one document holding all of their lines, so inserting
an order and removing a line group are each a single atomic write.
"""
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "size_grid")

client = MongoClient(DATABASE_URL) if DATABASE_URL else None
db = client[DATABASE_NAME] if client is not None else None


def _require_db():
    if db is None:
        raise RuntimeError("Database not available")
    return db


def _to_document(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    # Decimal values are stored as strings and parsed back by the schemas.
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    database = _require_db()
    doc = _to_document(data)
    now = datetime.now(timezone.utc)
    doc["created_at"] = now
    doc["updated_at"] = now
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    database = _require_db()
    cursor = database[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document_by_id(collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
    database = _require_db()
    if not ObjectId.is_valid(doc_id):
        return None
    return database[collection_name].find_one({"_id": ObjectId(doc_id)})


def update_document(collection_name: str, doc_id: str, fields: Dict[str, Any]) -> bool:
    database = _require_db()
    fields = dict(fields, updated_at=datetime.now(timezone.utc))
    result = database[collection_name].update_one({"_id": ObjectId(doc_id)}, {"$set": fields})
    return result.matched_count == 1


def pull_line_group(order_id: str, group_id: str, totals: Dict[str, Any]) -> bool:
    """Atomically remove every line of ``group_id`` from an order and store new totals."""
    database = _require_db()
    result = database["order"].update_one(
        {"_id": ObjectId(order_id), "lines.group_id": group_id},
        {
            "$pull": {"lines": {"group_id": group_id}},
            "$set": dict(totals, updated_at=datetime.now(timezone.utc)),
        },
    )
    return result.modified_count == 1
