# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Thin helpers over pymongo used by the API routes.

One client per request: routes open it with `open_client` and it is closed
when the block exits, whatever happens inside.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from bson import json_util
from bson.errors import BSONError
from pymongo import MongoClient

from extractdb.core.utils import parse_json_extended, serialize_documents

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
VIEW_SAMPLE_SIZE = 3
EXTRACT_SAMPLE_SIZE = 3
EDIT_SAMPLE_SIZE = 1


class InvalidRequest(ValueError):
    """User input the driver should never see (bad filter, non-object document)."""


@dataclass(frozen=True)
class CollectionDump:
    name: str
    documents: List[Dict[str, Any]]


@contextmanager
def open_client(uri: str, *, factory: Callable[..., Any] = MongoClient, timeout_ms: int = 10000) -> Iterator[Any]:
    client = factory(uri, serverSelectionTimeoutMS=timeout_ms)
    try:
        yield client
    finally:
        client.close()


def list_database_names(client) -> List[str]:
    return sorted(n for n in client.list_database_names() if n)


def list_collection_names(db) -> List[str]:
    return sorted(n for n in db.list_collection_names() if n)


def random_documents(db, collection_name: str, limit: int) -> List[Dict[str, Any]]:
    """Up to `limit` documents picked at random; the whole collection if it is that small."""
    coll = db[collection_name]
    count = coll.count_documents({})
    if count == 0:
        return []
    if count <= limit:
        return list(coll.find({}))
    return list(coll.aggregate([{"$sample": {"size": limit}}]))


def extract_collection(db, collection_name: str, limit_to_3: bool) -> CollectionDump:
    if limit_to_3:
        docs = random_documents(db, collection_name, EXTRACT_SAMPLE_SIZE)
    else:
        docs = list(db[collection_name].find({}))
    return CollectionDump(name=collection_name, documents=docs)


def extract(db, *, collection_name: str, all_collections: bool, limit_to_3: bool) -> List[CollectionDump]:
    names = list_collection_names(db) if all_collections else [collection_name]
    out = []
    for name in names:
        dump = extract_collection(db, name, limit_to_3)
        logger.info("Extracted %d documents from %s.%s", len(dump.documents), db.name, name)
        out.append(dump)
    return out


def preview(db, *, collection_name: str, all_collections: bool) -> List[Dict[str, Any]]:
    names = list_collection_names(db) if all_collections else [collection_name]
    return [
        {"name": name, "documents": serialize_documents(random_documents(db, name, VIEW_SAMPLE_SIZE))}
        for name in names
    ]


# ------------------ Search ------------------


def parse_filter(query: str) -> Dict[str, Any]:
    """Parse a JSON (or Extended JSON) search filter. Empty means match everything."""
    if not query:
        return {}
    try:
        parsed = json_util.loads(query)
    except (ValueError, TypeError, BSONError) as e:
        raise InvalidRequest("Search filter must be valid JSON.") from e
    if not isinstance(parsed, dict):
        raise InvalidRequest("Search filter must be a JSON object.")
    return parsed


def contains_filter(text: str) -> Dict[str, Any]:
    """Case-insensitive substring match over the whole document, server side."""
    needle = json.dumps((text or "").lower())
    return {
        "$where": (
            "function() {"
            f" var needle = {needle};"
            " if (!needle) { return false; }"
            " try {"
            "  var doc = JSON.stringify(this);"
            "  return typeof doc === 'string' && doc.toLowerCase().indexOf(needle) !== -1;"
            " } catch (e) { return false; }"
            "}"
        )
    }


def build_search_filter(mode: str, *, query: str, text: str) -> Dict[str, Any]:
    if mode == "text":
        if not text:
            raise InvalidRequest("Search text is required for text mode.")
        return contains_filter(text)
    return parse_filter(query)


def search(db, collection_name: str, filter_: Dict[str, Any], limit: int = SEARCH_LIMIT) -> List[Any]:
    return serialize_documents(db[collection_name].find(filter_).limit(limit))


# ------------------ Edit ------------------


def sample_document(db, collection_name: str) -> Optional[Any]:
    docs = serialize_documents(random_documents(db, collection_name, EDIT_SAMPLE_SIZE))
    return docs[0] if docs else None


def validate_document(document: Any) -> Dict[str, Any]:
    if not isinstance(document, dict):
        raise InvalidRequest("Document payload must be a JSON object.")
    try:
        parsed = parse_json_extended(document)
    except (ValueError, TypeError, BSONError) as e:
        raise InvalidRequest(f"Invalid document: {e}") from e
    if not isinstance(parsed, dict):
        raise InvalidRequest("Document payload must be a JSON object.")
    return parsed


def insert_document(db, collection_name: str, document: Dict[str, Any]) -> Tuple[bool, Any]:
    result = db[collection_name].insert_one(document)
    logger.info("Inserted document %s into %s.%s", result.inserted_id, db.name, collection_name)
    return result.acknowledged, result.inserted_id
