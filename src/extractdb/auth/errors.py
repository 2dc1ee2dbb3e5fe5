# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Admin identifier/password (and hence the signing secret) are not configured."""


class ServerMisconfigured(ConfigurationError):
    """Raised by login when the server cannot authenticate anyone."""


class EncodingError(RuntimeError):
    """A session token could not be produced (no signing secret)."""


class InvalidCredentials(Exception):
    """Wrong identifier or password. Deliberately carries no detail."""


class RedirectRequired(Exception):
    """Control-flow signal: the caller must be sent to the login page."""

    def __init__(self, location: str = "/login"):
        super().__init__(location)
        self.location = location
