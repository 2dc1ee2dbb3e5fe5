# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from starlette.responses import Response

from extractdb.auth import tokens
from extractdb.auth.credentials import CredentialStore
from extractdb.auth.errors import ConfigurationError, InvalidCredentials, RedirectRequired, ServerMisconfigured
from extractdb.auth.passwords import same_identifier, verify_password
from extractdb.auth.tokens import SessionPayload

COOKIE_NAME = "admin_session"
LOGIN_PATH = "/login"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class CookieDirective:
    """Everything needed to write (or clear) the session cookie on a response."""

    name: str
    value: str
    max_age: int
    secure: bool = False
    httponly: bool = True
    path: str = "/"
    samesite: str = "lax"
    expires: Optional[datetime] = field(default=None)

    def apply(self, response: Response) -> Response:
        response.set_cookie(
            self.name,
            self.value,
            max_age=self.max_age,
            expires=self.expires,
            path=self.path,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )
        return response


class SessionManager:
    def __init__(
        self,
        credentials: CredentialStore,
        *,
        cookie_secure: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.credentials = credentials
        self.cookie_secure = cookie_secure
        self.clock = clock

    def login(self, identifier: str, password: str, remember_me: bool) -> CookieDirective:
        try:
            expected_identifier, expected_password = self.credentials.get_credentials()
        except ConfigurationError as e:
            raise ServerMisconfigured(str(e)) from e

        supplied_identifier = (identifier or "").strip()
        supplied_password = (password or "").strip()

        # Both checks always run.
        identifier_ok = same_identifier(expected_identifier, supplied_identifier)
        password_ok = verify_password(expected_password, supplied_password)
        if not (identifier_ok and password_ok):
            raise InvalidCredentials()

        payload = SessionPayload.issue(expected_identifier, bool(remember_me), now=self.clock())
        value = tokens.encode(payload, self.credentials.get_signing_secret())
        return CookieDirective(
            name=COOKIE_NAME,
            value=value,
            max_age=payload.max_age,
            secure=self.cookie_secure,
        )

    def logout(self) -> CookieDirective:
        return CookieDirective(
            name=COOKIE_NAME,
            value="",
            max_age=0,
            secure=self.cookie_secure,
            expires=EPOCH,
        )

    def decode(self, token: Optional[str]) -> Optional[SessionPayload]:
        if not token or not self.credentials.configured:
            return None
        return tokens.decode(
            token,
            self.credentials.get_signing_secret(),
            identity=self.credentials.get_credentials()[0],
            now=self.clock(),
        )

    def get_session(self, cookies: Mapping[str, str]) -> Optional[SessionPayload]:
        token = cookies.get(COOKIE_NAME)
        if not token:
            return None
        return self.decode(token)

    def require_session(self, cookies: Mapping[str, str]) -> SessionPayload:
        session = self.get_session(cookies)
        if session is None:
            raise RedirectRequired(LOGIN_PATH)
        return session
