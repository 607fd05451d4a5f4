import random
import string
import time
from datetime import date
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from errors import NotFoundError

SENSITIVE_FIELDS = ("password",)


def to_object_id(value: Any, resource: str = "document") -> ObjectId:
    """Convert an external id to an ObjectId, raising NotFound when malformed."""
    if isinstance(value, ObjectId):
        return value
    # ObjectId(None) would mint a fresh id
    if value is None:
        raise NotFoundError(f"{resource.capitalize()} id is missing", resource)
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{resource.capitalize()} {value} not found", resource, str(value))


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or ObjectId.is_valid(value)


def make_id(length: int = 6) -> str:
    chars = string.ascii_letters + string.digits
    return "".join(random.choice(chars) for _ in range(length))


def now_millis() -> int:
    return int(time.time() * 1000)


def today_iso() -> str:
    return date.today().isoformat()


def stringify_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None and "_id" in doc:
        doc["_id"] = str(doc["_id"])  # stringify
    return doc


def strip_sensitive(snapshot: Optional[dict]) -> Optional[dict]:
    """Return a copy of an embedded user snapshot without secrets."""
    if not isinstance(snapshot, dict):
        return snapshot
    return {k: v for k, v in snapshot.items() if k not in SENSITIVE_FIELDS}


def as_native_id(value: Any) -> Any:
    """ObjectId for well-formed ids, the raw value otherwise (never matches a stored ObjectId)."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value
