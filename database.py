"""
Database helpers for EduMate

A thin layer over pymongo. Every collection is addressed by name and every
document gets created_at / updated_at timestamps on insert.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument

from config import DATABASE_NAME, DATABASE_URL

logger = logging.getLogger(__name__)

db = None

try:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=15000)
    db = _client[DATABASE_NAME]
except Exception as e:
    logger.error("MongoDB client could not be created: %s", e)


def _get_db():
    if db is None:
        raise RuntimeError("Database not initialized")
    return db


def ensure_indexes() -> None:
    database = _get_db()
    database["user"].create_index([("username", ASCENDING)], unique=True)
    database["user"].create_index([("email", ASCENDING)], unique=True)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for value, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_document(doc: Any) -> Any:
    """Make a Mongo document JSON friendly: `_id` becomes `id`, ObjectIds become strings."""
    if isinstance(doc, list):
        return [serialize_document(item) for item in doc]
    if isinstance(doc, dict):
        out = {}
        for key, value in doc.items():
            if key == "_id":
                out["id"] = str(value)
            else:
                out[key] = serialize_document(value)
        return out
    if isinstance(doc, ObjectId):
        return str(doc)
    return doc


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a single document with timestamps and return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)

    now = datetime.utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = _get_db()[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
) -> List[Dict[str, Any]]:
    cursor = _get_db()[collection_name].find(filter_dict or {})
    if sort:
        # Timestamps only have millisecond precision; ties go to the newer insert.
        if all(key != "_id" for key, _ in sort):
            sort = list(sort) + [("_id", -1)]
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def get_document(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _get_db()[collection_name].find_one(filter_dict)


def get_document_by_id(
    collection_name: str, doc_id: Any, extra_filter: Optional[Dict[str, Any]] = None
) -> Optional[Dict[str, Any]]:
    oid = to_object_id(doc_id)
    if oid is None:
        return None
    filter_dict = {"_id": oid}
    if extra_filter:
        filter_dict.update(extra_filter)
    return get_document(collection_name, filter_dict)


def update_document(
    collection_name: str, filter_dict: Dict[str, Any], update: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Apply a Mongo update and return the document after the change.

    `update` may be a plain field mapping (treated as `$set`) or a full update
    with operators.
    """
    if not any(key.startswith("$") for key in update):
        update = {"$set": update}
    update.setdefault("$set", {})["updated_at"] = datetime.utcnow()
    return _get_db()[collection_name].find_one_and_update(
        filter_dict, update, return_document=ReturnDocument.AFTER
    )


def update_documents(collection_name: str, filter_dict: Dict[str, Any], fields: Dict[str, Any]) -> int:
    fields = dict(fields, updated_at=datetime.utcnow())
    result = _get_db()[collection_name].update_many(filter_dict, {"$set": fields})
    return result.modified_count


def replace_document(collection_name: str, doc: Dict[str, Any]) -> Dict[str, Any]:
    doc["updated_at"] = datetime.utcnow()
    _get_db()[collection_name].replace_one({"_id": doc["_id"]}, doc)
    return doc


def delete_document(collection_name: str, filter_dict: Dict[str, Any]) -> bool:
    result = _get_db()[collection_name].delete_one(filter_dict)
    return result.deleted_count > 0


def count_documents(collection_name: str, filter_dict: Optional[Dict[str, Any]] = None) -> int:
    return _get_db()[collection_name].count_documents(filter_dict or {})
