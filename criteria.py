"""
Filter dicts -> MongoDB query documents.

Falsy filter values are skipped. Text filters are literal,
case-insensitive substring matches. Listing queries for orders and
wishlists are narrowed to the caller's own documents unless the caller
is an admin.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from auth import LoggedinUser
from errors import ValidationError
from utils import as_native_id, is_object_id

STAY_TEXT_FIELDS = ("name", "summary", "loc.city", "loc.country", "loc.address")
SORTABLE_STAY_FIELDS = (
    "name", "type", "price", "capacity", "bedrooms", "beds", "bathrooms", "roomType",
    "availableFrom", "availableUntil", "loc.city", "loc.country",
)


def _regex(txt: str) -> Dict[str, str]:
    return {"$regex": re.escape(str(txt)), "$options": "i"}


def _number(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def _filter_id(value: Any, name: str):
    if not is_object_id(value):
        raise ValidationError(f"{name} is not a valid id")
    return as_native_id(value)


def _and(criteria: Dict[str, Any], restriction: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not restriction:
        return criteria
    if not criteria:
        return restriction
    return {"$and": [criteria, restriction]}


def build_stay_criteria(filter_by: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    filter_by = filter_by or {}
    criteria: Dict[str, Any] = {}

    if filter_by.get("txt"):
        regex = _regex(filter_by["txt"])
        criteria["$or"] = [{field: regex} for field in STAY_TEXT_FIELDS]
    if filter_by.get("minPrice"):
        criteria["price"] = {"$gte": _number(filter_by["minPrice"], "minPrice")}
    if filter_by.get("type"):
        criteria["type"] = filter_by["type"]
    if filter_by.get("city"):
        criteria["loc.city"] = _regex(filter_by["city"])
    if filter_by.get("guests"):
        criteria["capacity"] = {"$gte": int(_number(filter_by["guests"], "guests"))}

    return criteria


def build_stay_sort(filter_by: Optional[Dict[str, Any]] = None) -> List[Tuple[str, int]]:
    filter_by = filter_by or {}
    sort_field = filter_by.get("sortField")
    if not sort_field:
        return []
    if sort_field not in SORTABLE_STAY_FIELDS:
        raise ValidationError(f"Cannot sort stays by {sort_field}")
    sort_dir = -1 if int(filter_by.get("sortDir") or 1) < 0 else 1
    return [(sort_field, sort_dir)]


def build_order_criteria(
    filter_by: Optional[Dict[str, Any]] = None,
    loggedin_user: Optional[LoggedinUser] = None,
) -> Dict[str, Any]:
    filter_by = filter_by or {}
    criteria: Dict[str, Any] = {}

    if filter_by.get("hostId"):
        criteria["host._id"] = _filter_id(filter_by["hostId"], "hostId")
    if filter_by.get("guestId"):
        criteria["guest._id"] = _filter_id(filter_by["guestId"], "guestId")
    if filter_by.get("status"):
        criteria["status"] = filter_by["status"]
    if filter_by.get("stayId"):
        criteria["stay._id"] = filter_by["stayId"]

    total_price: Dict[str, float] = {}
    if filter_by.get("totalPriceMin"):
        total_price["$gte"] = _number(filter_by["totalPriceMin"], "totalPriceMin")
    if filter_by.get("totalPriceMax"):
        total_price["$lte"] = _number(filter_by["totalPriceMax"], "totalPriceMax")
    if total_price:
        criteria["totalPrice"] = total_price

    if filter_by.get("startDate"):
        criteria["startDate"] = {"$gte": filter_by["startDate"]}
    if filter_by.get("endDate"):
        criteria["endDate"] = {"$lte": filter_by["endDate"]}

    restriction = None
    if loggedin_user is not None and not loggedin_user.is_admin:
        caller_id = as_native_id(loggedin_user.id)
        restriction = {"$or": [{"guest._id": caller_id}, {"host._id": caller_id}]}

    return _and(criteria, restriction)


def build_wishlist_criteria(
    filter_by: Optional[Dict[str, Any]] = None,
    loggedin_user: Optional[LoggedinUser] = None,
) -> Dict[str, Any]:
    filter_by = filter_by or {}
    criteria: Dict[str, Any] = {}

    if filter_by.get("userId"):
        criteria["byUser._id"] = filter_by["userId"]

    restriction = None
    if loggedin_user is not None and not loggedin_user.is_admin:
        restriction = {"byUser._id": loggedin_user.id}

    return _and(criteria, restriction)
