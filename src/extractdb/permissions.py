# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Request

from extractdb.auth.errors import RedirectRequired
from extractdb.auth.session import SessionManager
from extractdb.auth.tokens import SessionPayload
from extractdb.config import Settings
from extractdb.gate import login_location


class Unauthorized(Exception):
    """API call without a valid session (answered with a JSON 401, never a redirect)."""


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def current_session_optional(request: Request) -> Optional[SessionPayload]:
    # The gate middleware has usually decoded the cookie already.
    if hasattr(request.state, "session"):
        return request.state.session
    return get_session_manager(request).get_session(request.cookies)


def require_session(request: Request) -> SessionPayload:
    """Page dependency: no session means a redirect to the login page."""
    session = current_session_optional(request)
    if session is not None:
        return session
    try:
        return get_session_manager(request).require_session(request.cookies)
    except RedirectRequired:
        raise RedirectRequired(login_location(request.url.path)) from None


def require_api_session(request: Request) -> SessionPayload:
    session = current_session_optional(request)
    if session is None:
        raise Unauthorized()
    return session
