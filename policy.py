"""
Ownership rules.

A caller may write a document when they are an admin or one of its owners:
``host`` for stays, ``guest`` or ``host`` for orders, ``byUser`` for
wishlists. Ids are compared in their string form because orders keep
ObjectIds while stays and wishlists keep the caller's string id.
"""

import logging
from typing import Any, Iterable, Optional

from auth import LoggedinUser
from errors import AuthorizationError

logger = logging.getLogger(__name__)


def _owner_id(snapshot: Any) -> Optional[str]:
    if not isinstance(snapshot, dict) or snapshot.get("_id") is None:
        return None
    return str(snapshot["_id"])


def is_permitted(loggedin_user: Optional[LoggedinUser], owner_ids: Iterable[Optional[str]]) -> bool:
    if loggedin_user is None:
        return False
    if loggedin_user.is_admin:
        return True
    return any(owner_id is not None and owner_id == loggedin_user.id for owner_id in owner_ids)


def stay_owners(stay: dict):
    return [_owner_id(stay.get("host"))]


def order_owners(order: dict):
    return [_owner_id(order.get("guest")), _owner_id(order.get("host"))]


def wishlist_owners(wishlist: dict):
    return [_owner_id(wishlist.get("byUser"))]


OWNERS = {
    "stay": stay_owners,
    "order": order_owners,
    "wishlist": wishlist_owners,
}


def authorize(resource: str, doc: dict, loggedin_user: Optional[LoggedinUser], action: str = "update") -> None:
    """Raise AuthorizationError unless ``loggedin_user`` may act on ``doc``."""
    if is_permitted(loggedin_user, OWNERS[resource](doc)):
        return
    doc_id = str(doc.get("_id"))
    caller_id = loggedin_user.id if loggedin_user else None
    logger.warning("caller %s not authorized to %s %s %s", caller_id, action, resource, doc_id)
    raise AuthorizationError(f"Not authorized to {action} this {resource}", resource, doc_id)


def require_caller(loggedin_user: Optional[LoggedinUser], resource: str, action: str) -> LoggedinUser:
    if loggedin_user is None:
        raise AuthorizationError(f"Login required to {action} {resource}", resource)
    return loggedin_user
