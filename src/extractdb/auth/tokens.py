# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Signed session tokens.

Wire format: ``<base64url(JSON payload)>.<base64url(HMAC-SHA256)>``, no
padding. The MAC covers the encoded payload segment and is keyed directly
with the signing secret.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Optional

from itsdangerous import BadData, Signer
from itsdangerous.encoding import base64_decode, base64_encode
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from extractdb.auth.errors import EncodingError
from extractdb.auth.passwords import same_identifier

logger = logging.getLogger(__name__)

SEPARATOR = "."
SHORT_WINDOW_SECONDS = 60 * 60 * 12  # 12 hours
LONG_WINDOW_SECONDS = 60 * 60 * 24 * 30  # 30 days


def window_for(remember_me: bool) -> int:
    return LONG_WINDOW_SECONDS if remember_me else SHORT_WINDOW_SECONDS


class SessionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, frozen=True, populate_by_name=True)

    identity: str = Field(min_length=1)
    issued_at: int = Field(alias="issuedAt")
    expires_at: int = Field(alias="expiresAt")
    remember_me: bool = Field(alias="rememberMe")

    @model_validator(mode="after")
    def _expiry_after_issue(self) -> "SessionPayload":
        if self.expires_at <= self.issued_at:
            raise ValueError("expiresAt must be after issuedAt")
        return self

    @classmethod
    def issue(cls, identity: str, remember_me: bool, now: Optional[float] = None) -> "SessionPayload":
        issued_at = int(time.time() if now is None else now)
        return cls(
            identity=identity,
            issued_at=issued_at,
            expires_at=issued_at + window_for(remember_me),
            remember_me=bool(remember_me),
        )

    @property
    def max_age(self) -> int:
        return self.expires_at - self.issued_at


def _signer(secret: str) -> Signer:
    return Signer(secret, sep=SEPARATOR, key_derivation="none", digest_method=hashlib.sha256)


def encode(payload: SessionPayload, secret: str) -> str:
    if not secret:
        raise EncodingError("No signing secret available")
    body = base64_encode(payload.model_dump_json(by_alias=True))
    return _signer(secret).sign(body).decode("ascii")


def decode(
    token: Optional[str],
    secret: Optional[str],
    *,
    identity: str,
    now: Optional[float] = None,
) -> Optional[SessionPayload]:
    """Verify `token` and return its payload, or None.

    Bad shape, bad signature, bad payload, foreign identity and expiry all
    give the same None.
    """
    if not token or not secret:
        return None

    parts = token.split(SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None

    try:
        body = _signer(secret).unsign(token)
        payload = SessionPayload.model_validate_json(base64_decode(body))
    except (BadData, ValidationError, ValueError) as e:
        logger.debug("Rejected session token: %s", type(e).__name__)
        return None

    if not identity or not same_identifier(identity, payload.identity):
        return None

    current = time.time() if now is None else now
    if current > payload.expires_at:
        return None

    return payload
