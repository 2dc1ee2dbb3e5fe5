# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Choosing the MongoDB URI for a request.

A request names either a preconfigured connection (by id, URI kept server
side) or carries its own URI. The preconfigured id wins when both are given.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from extractdb.config import PreconfiguredConnection


class ConnectionResolutionError(ValueError):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def public_options(connections: Iterable[PreconfiguredConnection]) -> List[Dict[str, str]]:
    """What the browser is allowed to see: id and display name, never the URI."""
    return [{"id": c.id, "name": c.name} for c in connections]


def find_connection(
    connections: Iterable[PreconfiguredConnection], connection_id: str
) -> Optional[PreconfiguredConnection]:
    for c in connections:
        if c.id == connection_id:
            return c
    return None


def resolve_mongo_uri(
    mongo_uri: str,
    preconfigured_id: str,
    connections: Iterable[PreconfiguredConnection],
) -> str:
    cid = (preconfigured_id or "").strip()
    if cid:
        selected = find_connection(connections, cid)
        if selected is None:
            raise ConnectionResolutionError(
                "The selected MongoDB connection is not available. Please choose another option."
            )
        if not selected.uri:
            raise ConnectionResolutionError(
                "MongoDB URI is not configured for the selected option. "
                "Update your environment variables or use a custom URI."
            )
        return selected.uri

    uri = (mongo_uri or "").strip()
    if not uri:
        raise ConnectionResolutionError("MongoDB URI is required")
    return uri
