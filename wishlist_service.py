"""
Wishlists: a user's ordered list of stay ids.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from auth import LoggedinUser
from criteria import build_wishlist_criteria
from database import create_document, get_collection, get_documents
from errors import NotFoundError, ValidationError
from policy import authorize, require_caller
from utils import now_millis, stringify_id, to_object_id

logger = logging.getLogger(__name__)

COLLECTION = "wishlist"

UPDATABLE_FIELDS = ("title", "stays", "city", "country", "byUser")


def query(filter_by: Optional[Dict[str, Any]], loggedin_user: Optional[LoggedinUser]) -> List[Dict[str, Any]]:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "list")
    criteria = build_wishlist_criteria(filter_by, loggedin_user)
    try:
        wishlists = get_documents(COLLECTION, criteria)
    except PyMongoError as err:
        logger.error("cannot find wishlists: %s", err)
        raise
    return [stringify_id(wishlist) for wishlist in wishlists]


def _find(oid, wishlist_id: str) -> Dict[str, Any]:
    try:
        wishlist = get_collection(COLLECTION).find_one({"_id": oid})
    except PyMongoError as err:
        logger.error("while finding wishlist %s: %s", wishlist_id, err)
        raise
    if not wishlist:
        raise NotFoundError(f"Wishlist {wishlist_id} not found", COLLECTION, wishlist_id)
    return wishlist


def get_by_id(wishlist_id: str, loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    wishlist = _find(to_object_id(wishlist_id, COLLECTION), wishlist_id)
    authorize(COLLECTION, wishlist, loggedin_user, "view")
    return stringify_id(wishlist)


def add(draft: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "add")
    now = now_millis()
    wishlist = {
        "title": draft.get("title") or f"Wishlist {datetime.now().year}",
        "byUser": {"_id": loggedin_user.id, "fullname": loggedin_user.fullname},
        "stays": draft.get("stays") or [],
        "city": draft.get("city") or "",
        "country": draft.get("country") or "",
        "createdAt": now,
        "updatedAt": now,
    }

    try:
        create_document(COLLECTION, wishlist)
    except PyMongoError as err:
        logger.error("cannot insert wishlist: %s", err)
        raise
    logger.info("wishlist %s added by %s", wishlist["_id"], loggedin_user.id)
    return stringify_id(wishlist)


def update(wishlist: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    wishlist_id = wishlist.get("_id")
    oid = to_object_id(wishlist_id, COLLECTION)
    existing = _find(oid, wishlist_id)
    authorize(COLLECTION, existing, loggedin_user, "update")

    to_set = {key: wishlist[key] for key in UPDATABLE_FIELDS if key in wishlist}
    if "byUser" in to_set and not loggedin_user.is_admin:
        # owners may rename themselves, not hand the wishlist over
        to_set["byUser"] = {**(to_set["byUser"] or {}), "_id": existing["byUser"]["_id"]}
    to_set["updatedAt"] = now_millis()

    try:
        get_collection(COLLECTION).update_one({"_id": oid}, {"$set": to_set})
    except PyMongoError as err:
        logger.error("cannot update wishlist %s: %s", wishlist_id, err)
        raise
    return stringify_id(_find(oid, wishlist_id))


def remove(wishlist_id: str, loggedin_user: Optional[LoggedinUser]) -> str:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "remove")
    criteria: Dict[str, Any] = {"_id": to_object_id(wishlist_id, COLLECTION)}
    if not loggedin_user.is_admin:
        criteria["byUser._id"] = loggedin_user.id

    try:
        res = get_collection(COLLECTION).delete_one(criteria)
    except PyMongoError as err:
        logger.error("cannot remove wishlist %s: %s", wishlist_id, err)
        raise
    if res.deleted_count == 0:
        raise NotFoundError(f"Wishlist {wishlist_id} not found or not yours", COLLECTION, wishlist_id)
    logger.info("wishlist %s removed by %s", wishlist_id, loggedin_user.id)
    return wishlist_id


def add_stay_to_wishlist(wishlist_id: str, stay_id: str, loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    if not stay_id:
        raise ValidationError("stayId is required", COLLECTION, wishlist_id)
    oid = to_object_id(wishlist_id, COLLECTION)
    wishlist = _find(oid, wishlist_id)
    authorize(COLLECTION, wishlist, loggedin_user, "update")

    # TODO: two concurrent adds can both pass this check; move it into the update filter ({"stays": {"$ne": stay_id}})
    if stay_id in (wishlist.get("stays") or []):
        raise ValidationError("Stay already in wishlist", COLLECTION, wishlist_id)

    try:
        get_collection(COLLECTION).update_one(
            {"_id": oid},
            {"$push": {"stays": stay_id}, "$set": {"updatedAt": now_millis()}},
        )
    except PyMongoError as err:
        logger.error("cannot add stay to wishlist %s: %s", wishlist_id, err)
        raise
    return stringify_id(_find(oid, wishlist_id))


def remove_stay_from_wishlist(wishlist_id: str, stay_id: str, loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    oid = to_object_id(wishlist_id, COLLECTION)
    wishlist = _find(oid, wishlist_id)
    authorize(COLLECTION, wishlist, loggedin_user, "update")

    try:
        res = get_collection(COLLECTION).update_one(
            {"_id": oid, "stays": stay_id},
            {"$pull": {"stays": stay_id}, "$set": {"updatedAt": now_millis()}},
        )
    except PyMongoError as err:
        logger.error("cannot remove stay from wishlist %s: %s", wishlist_id, err)
        raise
    if res.matched_count == 0:
        raise NotFoundError(f"Stay {stay_id} is not in wishlist {wishlist_id}", COLLECTION, wishlist_id)
    return stringify_id(_find(oid, wishlist_id))
