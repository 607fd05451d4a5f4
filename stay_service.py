"""
Stays (listings) and their embedded reviews.

A stay's owner is ``host._id``, taken from the caller when the stay is
created and never changed afterwards.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from auth import LoggedinUser
from config import settings
from criteria import build_stay_criteria, build_stay_sort
from database import create_document, get_collection, get_documents
from errors import NotFoundError, ValidationError
from policy import authorize, require_caller
from utils import make_id, now_millis, stringify_id, to_object_id

logger = logging.getLogger(__name__)

COLLECTION = "stay"
SUGGESTED_NIGHTS = 5

UPDATABLE_FIELDS = (
    "name", "summary", "price", "capacity", "guests", "bedrooms", "beds", "bathrooms",
    "roomType", "imgUrls", "loc", "amenities", "type", "availableFrom", "availableUntil",
    "host", "reviews", "likedByUsers",
)


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def suggested_stay_range(stay: Dict[str, Any], nights: int = SUGGESTED_NIGHTS) -> Optional[Dict[str, str]]:
    """Pick a ``nights``-long range a third of the way into the availability window.

    Windows no longer than ``nights`` are suggested whole.
    """
    if not stay.get("availableFrom") or not stay.get("availableUntil"):
        return None
    available_from = _parse_date(stay["availableFrom"])
    available_until = _parse_date(stay["availableUntil"])
    if available_from is None or available_until is None:
        return None
    try:
        total_days = (available_until - available_from).days
    except TypeError:
        # naive vs aware datetimes
        return None

    if total_days <= nights:
        return {"start": available_from.isoformat(), "end": available_until.isoformat()}

    start = available_from + timedelta(days=total_days // 3)
    end = start + timedelta(days=nights)
    return {"start": start.isoformat(), "end": end.isoformat()}


def _rating(host: Dict[str, Any]) -> Optional[float]:
    try:
        return float(host["rating"]) if host.get("rating") else None
    except (TypeError, ValueError):
        return None


def _to_listing(stay: Dict[str, Any]) -> Dict[str, Any]:
    host = stay.get("host") or {}
    return {
        "_id": str(stay["_id"]),
        "name": stay.get("name"),
        "type": stay.get("type"),
        "imgUrls": stay.get("imgUrls") or [],
        "price": stay.get("price"),
        "summary": stay.get("summary"),
        "capacity": stay.get("capacity") or stay.get("guests") or 0,
        "bathrooms": stay.get("bathrooms"),
        "bedrooms": stay.get("bedrooms"),
        "beds": stay.get("beds"),
        "roomType": stay.get("roomType"),
        "amenities": stay.get("amenities") or [],
        "availableFrom": stay.get("availableFrom"),
        "availableUntil": stay.get("availableUntil"),
        "host": host,
        "loc": stay.get("loc"),
        "reviews": stay.get("reviews") or [],
        "numReviews": host.get("numReviews") or 0,
        "likedByUsers": stay.get("likedByUsers") or [],
        "rating": _rating(host),
        "suggestedRange": suggested_stay_range(stay),
    }


def query(filter_by: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    filter_by = filter_by or {}
    criteria = build_stay_criteria(filter_by)
    sort = build_stay_sort(filter_by)

    skip = limit = 0
    if filter_by.get("pageIdx") is not None:
        skip = int(filter_by["pageIdx"]) * settings.stay_page_size
        limit = settings.stay_page_size

    try:
        stays = get_documents(COLLECTION, criteria, sort=sort, skip=skip, limit=limit)
    except PyMongoError as err:
        logger.error("cannot find stays: %s", err)
        raise
    return [_to_listing(stay) for stay in stays]


def get_by_id(stay_id: str) -> Dict[str, Any]:
    oid = to_object_id(stay_id, COLLECTION)
    try:
        stay = get_collection(COLLECTION).find_one({"_id": oid})
    except PyMongoError as err:
        logger.error("while finding stay %s: %s", stay_id, err)
        raise
    if not stay:
        raise NotFoundError(f"Stay {stay_id} not found", COLLECTION, stay_id)

    stay["createdAt"] = oid.generation_time
    return stringify_id(stay)


def add(draft: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "add")
    if draft.get("price") is None:
        raise ValidationError("Price is required", COLLECTION)

    stay = {
        "name": draft.get("name") or "Untitled Stay",
        "type": draft.get("type") or "House",
        "summary": draft.get("summary") or "",
        "price": draft["price"],
        "capacity": draft.get("capacity") or draft.get("guests") or 1,
        "bedrooms": draft.get("bedrooms") or 1,
        "beds": draft.get("beds") or 1,
        "bathrooms": draft.get("bathrooms") or 1,
        "roomType": draft.get("roomType") or "",
        "imgUrls": draft.get("imgUrls") or [],
        "loc": draft.get("loc") or {"city": "", "country": "", "address": ""},
        "amenities": draft.get("amenities") or [],
        "availableFrom": draft.get("availableFrom"),
        "availableUntil": draft.get("availableUntil"),
        # whatever host the client sent is ignored
        "host": loggedin_user.snapshot(),
        "reviews": [],
        "likedByUsers": [],
    }

    try:
        create_document(COLLECTION, stay)
    except PyMongoError as err:
        logger.error("cannot insert stay: %s", err)
        raise
    logger.info("stay %s added by %s", stay["_id"], loggedin_user.id)
    return stringify_id(stay)


def update(stay: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    stay_id = stay.get("_id")
    if "price" in stay and stay["price"] is None:
        raise ValidationError("Price is required", COLLECTION, stay_id)

    existing = get_by_id(stay_id)
    authorize(COLLECTION, existing, loggedin_user, "update")

    to_set = {key: stay[key] for key in UPDATABLE_FIELDS if key in stay}
    if stay.get("capacity") or stay.get("guests"):
        to_set["capacity"] = stay.get("capacity") or stay.get("guests")
    to_set["host"] = existing["host"]

    try:
        get_collection(COLLECTION).update_one({"_id": to_object_id(stay_id)}, {"$set": to_set})
    except PyMongoError as err:
        logger.error("cannot update stay %s: %s", stay_id, err)
        raise
    logger.info("stay %s updated by %s", stay_id, loggedin_user.id)
    return get_by_id(stay_id)


def remove(stay_id: str, loggedin_user: Optional[LoggedinUser]) -> str:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "remove")
    criteria: Dict[str, Any] = {"_id": to_object_id(stay_id, COLLECTION)}
    if not loggedin_user.is_admin:
        criteria["host._id"] = loggedin_user.id

    try:
        res = get_collection(COLLECTION).delete_one(criteria)
    except PyMongoError as err:
        logger.error("cannot remove stay %s: %s", stay_id, err)
        raise
    if res.deleted_count == 0:
        raise NotFoundError(f"Stay {stay_id} not found or not yours", COLLECTION, stay_id)
    logger.info("stay %s removed by %s", stay_id, loggedin_user.id)
    return stay_id


def add_stay_review(stay_id: str, txt: str, loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    loggedin_user = require_caller(loggedin_user, "review", "add")
    if not txt:
        raise ValidationError("Review text is required", "review")

    review = {
        "id": make_id(),
        "by": loggedin_user.snapshot(),
        "txt": txt,
        "createdAt": now_millis(),
    }

    oid = to_object_id(stay_id, COLLECTION)
    try:
        res = get_collection(COLLECTION).update_one({"_id": oid}, {"$push": {"reviews": review}})
    except PyMongoError as err:
        logger.error("cannot add stay review %s: %s", stay_id, err)
        raise
    if res.matched_count == 0:
        raise NotFoundError(f"Stay {stay_id} not found", COLLECTION, stay_id)
    return review


def remove_stay_review(stay_id: str, review_id: str, loggedin_user: Optional[LoggedinUser]) -> str:
    """Pull a review; non-admins only match reviews they wrote."""
    loggedin_user = require_caller(loggedin_user, "review", "remove")

    match: Dict[str, Any] = {"id": review_id}
    if not loggedin_user.is_admin:
        match["by._id"] = loggedin_user.id
    criteria = {"_id": to_object_id(stay_id, COLLECTION), "reviews": {"$elemMatch": match}}

    try:
        res = get_collection(COLLECTION).update_one(criteria, {"$pull": {"reviews": {"id": review_id}}})
    except PyMongoError as err:
        logger.error("cannot remove stay review %s: %s", review_id, err)
        raise
    if res.matched_count == 0:
        raise NotFoundError("Review not found or not authorized", "review", review_id)
    return review_id
