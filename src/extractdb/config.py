# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Process-wide settings.

Everything the app reads from the environment is collected here once, at
startup, into an immutable object that is handed to the app factory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

MAX_PRECONFIGURED_URIS = 4

_TRUTHY = {"1", "true", "yes", "y"}


def env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class PreconfiguredConnection:
    id: str
    name: str
    uri: str


@dataclass(frozen=True)
class Settings:
    admin_identifier: str = ""
    admin_password: str = ""
    cookie_secure: bool = False
    mongo_timeout_ms: int = 10000
    connections: Tuple[PreconfiguredConnection, ...] = field(default_factory=tuple)


def load_connections(env: Mapping[str, str]) -> Tuple[PreconfiguredConnection, ...]:
    out = []
    for index in range(1, MAX_PRECONFIGURED_URIS + 1):
        uri = (env.get(f"MONGODB_URI{index}") or "").strip()
        name = (env.get(f"MONGODB_URI{index}_NAME") or "").strip()
        if not uri or not name:
            continue
        out.append(PreconfiguredConnection(id=f"preconfigured-{index}", name=name, uri=uri))
    return tuple(out)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    production = (env.get("EXTRACTDB_ENV") or "").strip().lower() == "production"
    secure = env_flag(env.get("EXTRACTDB_COOKIE_SECURE"), default=production)

    try:
        timeout_ms = int(env.get("EXTRACTDB_MONGO_TIMEOUT_MS") or "10000")
    except ValueError:
        timeout_ms = 10000

    return Settings(
        admin_identifier=(env.get("ADMIN_IDENTIFIER") or "").strip(),
        admin_password=(env.get("ADMIN_PASSWORD") or "").strip(),
        cookie_secure=secure,
        mongo_timeout_ms=timeout_ms,
        connections=load_connections(env),
    )
