"""
Orders (bookings of a stay by a guest).

An order has two owners, its guest and its host. Both snapshots are
stored with ObjectId ``_id`` values and handed back to callers with
string ids and without passwords.
"""

import logging
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from auth import LoggedinUser
from criteria import build_order_criteria
from database import create_document, get_collection, get_documents
from errors import NotFoundError, ValidationError
from policy import authorize, require_caller
from utils import as_native_id, is_object_id, strip_sensitive, stringify_id, to_object_id, today_iso

logger = logging.getLogger(__name__)

COLLECTION = "order"

REQUIRED_FIELDS = ("totalPrice", "startDate", "endDate")
BUSINESS_FIELDS = (
    "totalPrice", "pricePerNight", "cleaningFee", "serviceFee", "numNights",
    "startDate", "endDate", "guests", "stay", "msgs", "status", "bookedAt",
)


def _native_snapshot(snapshot: Any, role: str) -> Dict[str, Any]:
    if not isinstance(snapshot, dict) or not is_object_id(snapshot.get("_id")):
        raise ValidationError(f"Order {role} must carry a valid _id", COLLECTION)
    native = strip_sensitive(snapshot)
    native["_id"] = as_native_id(snapshot["_id"])
    return native


def _stay_host(stay: Any) -> Dict[str, Any]:
    if not isinstance(stay, dict) or not stay.get("_id"):
        raise ValidationError("Order stay must carry an _id", COLLECTION)
    stay_id = str(stay["_id"])
    try:
        stored = get_collection("stay").find_one({"_id": to_object_id(stay_id, "stay")}, {"host": 1})
    except PyMongoError as err:
        logger.error("while finding stay %s for order: %s", stay_id, err)
        raise
    if not stored:
        raise NotFoundError(f"Stay {stay_id} not found", "stay", stay_id)
    return _native_snapshot(stored.get("host"), "host")


def _client_snapshot(snapshot: Any) -> Any:
    if not isinstance(snapshot, dict):
        return snapshot
    return stringify_id(strip_sensitive(snapshot))


def _pinned_snapshot(existing: Dict[str, Any], order: Dict[str, Any], role: str) -> Dict[str, Any]:
    incoming = order.get(role) if isinstance(order.get(role), dict) else {}
    return {**existing[role], **incoming, "_id": existing[role]["_id"]}


def _to_client(order: Dict[str, Any]) -> Dict[str, Any]:
    order["host"] = _client_snapshot(order.get("host"))
    order["guest"] = _client_snapshot(order.get("guest"))
    return stringify_id(order)


def query(filter_by: Optional[Dict[str, Any]], loggedin_user: Optional[LoggedinUser]) -> List[Dict[str, Any]]:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "list")
    criteria = build_order_criteria(filter_by, loggedin_user)
    try:
        orders = get_documents(COLLECTION, criteria)
    except PyMongoError as err:
        logger.error("cannot find orders: %s", err)
        raise
    return [_to_client(order) for order in orders]


def _find(oid, order_id: str) -> Dict[str, Any]:
    try:
        order = get_collection(COLLECTION).find_one({"_id": oid})
    except PyMongoError as err:
        logger.error("while finding order %s: %s", order_id, err)
        raise
    if not order:
        raise NotFoundError(f"Order {order_id} not found", COLLECTION, order_id)
    return order


def get_by_id(order_id: str, loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    oid = to_object_id(order_id, COLLECTION)
    order = _find(oid, order_id)
    authorize(COLLECTION, order, loggedin_user, "view")

    order["createdAt"] = oid.generation_time
    return _to_client(order)


def add(draft: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "add")
    missing = [field for field in REQUIRED_FIELDS if draft.get(field) is None]
    if missing:
        raise ValidationError(f"Missing order fields: {', '.join(missing)}", COLLECTION)

    order = {
        # the host comes from the stored stay, never from the body
        "host": _stay_host(draft.get("stay")),
        # the guest is always whoever books
        "guest": _native_snapshot(loggedin_user.snapshot(), "guest"),
        "totalPrice": draft["totalPrice"],
        "pricePerNight": draft.get("pricePerNight"),
        "cleaningFee": draft.get("cleaningFee") or 0,
        "serviceFee": draft.get("serviceFee") or 0,
        "numNights": draft.get("numNights"),
        "startDate": draft["startDate"],
        "endDate": draft["endDate"],
        "guests": draft.get("guests"),
        "stay": draft.get("stay"),
        "msgs": draft.get("msgs") or [],
        "status": "pending",
        "bookedAt": today_iso(),
    }

    try:
        create_document(COLLECTION, order)
    except PyMongoError as err:
        logger.error("cannot insert order: %s", err)
        raise
    logger.info("order %s booked by %s", order["_id"], loggedin_user.id)
    return _to_client(order)


def update(order: Dict[str, Any], loggedin_user: Optional[LoggedinUser]) -> Dict[str, Any]:
    """Replace an order's business fields.

    Guest, host and admins may update. The stored guest and host ids are
    kept; the rest of their snapshots may be refreshed from the body.
    """
    order_id = order.get("_id")
    oid = to_object_id(order_id, COLLECTION)
    existing = _find(oid, order_id)
    authorize(COLLECTION, existing, loggedin_user, "update")

    host = _native_snapshot(_pinned_snapshot(existing, order, "host"), "host")
    guest = _native_snapshot(_pinned_snapshot(existing, order, "guest"), "guest")

    to_save: Dict[str, Any] = {"host": host, "guest": guest}
    for key in BUSINESS_FIELDS:
        to_save[key] = order[key] if key in order else existing.get(key)
    to_save["cleaningFee"] = to_save["cleaningFee"] or 0
    to_save["serviceFee"] = to_save["serviceFee"] or 0
    to_save["msgs"] = to_save["msgs"] or []

    try:
        get_collection(COLLECTION).update_one({"_id": oid}, {"$set": to_save})
    except PyMongoError as err:
        logger.error("cannot update order %s: %s", order_id, err)
        raise
    logger.info("order %s updated by %s", order_id, loggedin_user.id)
    return _to_client(_find(oid, order_id))


def remove(order_id: str, loggedin_user: Optional[LoggedinUser]) -> str:
    loggedin_user = require_caller(loggedin_user, COLLECTION, "remove")
    criteria: Dict[str, Any] = {"_id": to_object_id(order_id, COLLECTION)}
    # only the guest (or an admin) can cancel
    if not loggedin_user.is_admin:
        criteria["guest._id"] = as_native_id(loggedin_user.id)

    try:
        res = get_collection(COLLECTION).delete_one(criteria)
    except PyMongoError as err:
        logger.error("cannot remove order %s: %s", order_id, err)
        raise
    if res.deleted_count == 0:
        raise NotFoundError(f"Order {order_id} not found or not yours", COLLECTION, order_id)
    logger.info("order %s removed by %s", order_id, loggedin_user.id)
    return order_id
