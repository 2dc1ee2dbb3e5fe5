# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Administrator authentication.

This package provides:
- The configured admin account and the signing secret derived from it
- Password checks (plain value in constant time, or argon2 hash)
- Signed, self-contained session tokens (itsdangerous, HMAC-SHA256)
- The session manager behind login/logout/session lookup
"""
