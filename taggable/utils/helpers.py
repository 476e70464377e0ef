"""
Common utility functions
"""
from bson.objectid import ObjectId
from typing import Dict, Any, Optional


def to_object_id(value: Any) -> Any:
    """Coerce a 24-hex string to ObjectId; other ids are returned unchanged"""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def document_to_dict(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert a MongoDB document to a JSON-friendly dictionary"""
    if document is None:
        return None
    result = dict(document)
    if '_id' in result:
        result['_id'] = str(result['_id'])
    return result


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Read a boolean query-string flag"""
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')
