"""
MongoDB access.

``db`` is the handle every service goes through via ``get_collection``;
tests replace it with an in-memory database.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pymongo import MongoClient

from config import settings

logger = logging.getLogger(__name__)

client = MongoClient(settings.database_url)
db = client[settings.database_name]


def get_collection(name: str):
    return db[name]


def create_document(collection_name: str, data: Dict[str, Any]) -> str:
    """Insert ``data`` and return the new id as a string.

    pymongo sets ``_id`` on the dict it is given, so callers see the
    stored id on ``data`` as well.
    """
    result = get_collection(collection_name).insert_one(data)
    logger.debug("inserted %s into %s", result.inserted_id, collection_name)
    return str(result.inserted_id)


def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[Sequence[Tuple[str, int]]] = None,
    skip: int = 0,
    limit: int = 0,
) -> List[Dict[str, Any]]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if skip:
        cursor = cursor.skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
