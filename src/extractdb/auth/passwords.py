# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_PH = PasswordHasher()

ARGON2_PREFIX = "$argon2"


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Empty password")
    return _PH.hash(plain)


def is_hashed(stored: str) -> bool:
    return (stored or "").startswith(ARGON2_PREFIX)


def verify_password(stored: str, plain: str) -> bool:
    """Check `plain` against the configured value.

    The configured value is either an argon2 hash or the password itself; the
    latter is compared in constant time.
    """
    if not stored or not plain:
        return False
    if is_hashed(stored):
        try:
            return _PH.verify(stored, plain)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False
    return hmac.compare_digest(stored.encode("utf-8"), plain.encode("utf-8"))


def same_identifier(expected: str, supplied: str) -> bool:
    return hmac.compare_digest((expected or "").encode("utf-8"), (supplied or "").encode("utf-8"))
