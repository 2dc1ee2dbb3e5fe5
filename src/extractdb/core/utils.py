# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
from typing import Any, Iterable, List, Mapping

from bson import json_util

# Relaxed Extended JSON: ObjectId -> {"$oid": ...}, dates -> {"$date": "<ISO>"}
JSON_OPTIONS = json_util.RELAXED_JSON_OPTIONS


def clean_str(body: Mapping[str, Any], key: str) -> str:
    """String field from a request body, trimmed; anything else becomes ''."""
    v = body.get(key)
    return v.strip() if isinstance(v, str) else ""


def as_bool(value: Any) -> bool:
    """Truthiness as a browser sends it: real booleans, or the strings 'true'/'false'."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def to_json_safe(data: Any) -> Any:
    """Convert BSON-bearing data (ObjectId, datetime, ...) to plain JSON types."""
    return json.loads(json_util.dumps(data, json_options=JSON_OPTIONS))


def serialize_documents(documents: Iterable[Mapping[str, Any]]) -> List[Any]:
    return [to_json_safe(d) for d in documents]


def dumps_pretty(data: Any) -> str:
    return json.dumps(to_json_safe(data), indent=2, ensure_ascii=False)


def parse_json_extended(data: Any) -> Any:
    """Parse user-supplied JSON with MongoDB Extended JSON support ({"$oid": ...})."""
    return json_util.loads(json.dumps(data))
