"""
MongoDB document serialization utilities
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId


def serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Convert every ObjectId of a document to string for JSON serialization

    Args:
        doc: MongoDB document dictionary

    Returns:
        Serialized copy of the document, or None if input is None
    """
    if doc is None:
        return None
    return convert_object_ids(doc)


def serialize_docs(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Serialize a list of MongoDB documents

    Args:
        docs: List of MongoDB document dictionaries

    Returns:
        List of serialized documents
    """
    return [serialize_doc(doc) for doc in docs if doc is not None]


def convert_object_ids(doc: Any) -> Any:
    """
    Recursively convert ObjectId instances to strings in a document

    Args:
        doc: Document that may contain ObjectIds at any level

    Returns:
        Document with all ObjectIds converted to strings
    """
    if isinstance(doc, dict):
        return {key: convert_object_ids(value) for key, value in doc.items()}
    elif isinstance(doc, list):
        return [convert_object_ids(item) for item in doc]
    elif isinstance(doc, ObjectId):
        return str(doc)
    else:
        return doc


def page_payload(
    key: str, docs: List[Dict[str, Any]], total: int, limit: int, offset: int
) -> Dict[str, Any]:
    """Build the limit/offset list envelope used by every list endpoint."""
    return {
        key: serialize_docs(docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to naive UTC, the form stored in MongoDB."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
