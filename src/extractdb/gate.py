# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request gate: decides, before any handler runs, whether a request goes
through or is redirected.

    protected path, no session  -> /login?from=<path>
    login page, valid session   -> /admin
    anything else               -> through
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

STATIC_PREFIXES = ("/static", "/favicon", "/assets")
PROTECTED_ROOT = "/admin"
LOGIN_PATH = "/login"
RETURN_PARAM = "from"

ALLOW = "allow"
TO_LOGIN = "redirect_login"
TO_PROTECTED_ROOT = "redirect_protected_root"


@dataclass(frozen=True)
class GateDecision:
    action: str
    location: Optional[str] = None

    @property
    def redirect(self) -> bool:
        return self.action != ALLOW


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_static_asset(path: str) -> bool:
    return any(path.startswith(p) for p in STATIC_PREFIXES)


def is_protected(path: str) -> bool:
    return _under(path, PROTECTED_ROOT)


def is_login_page(path: str) -> bool:
    return _under(path, LOGIN_PATH)


def login_location(return_to: str = "") -> str:
    if not return_to or return_to == PROTECTED_ROOT:
        return LOGIN_PATH
    return f"{LOGIN_PATH}?{urlencode({RETURN_PARAM: return_to})}"


def decide(path: str, has_session: bool) -> GateDecision:
    if is_login_page(path):
        if has_session:
            return GateDecision(TO_PROTECTED_ROOT, PROTECTED_ROOT)
        return GateDecision(ALLOW)

    if is_protected(path) and not has_session:
        return GateDecision(TO_LOGIN, login_location(path))

    return GateDecision(ALLOW)


def safe_return_target(value: Optional[str]) -> str:
    """Post-login destination: only paths under the protected root are honoured."""
    target = (value or "").strip()
    if is_protected(target):
        return target
    return PROTECTED_ROOT
