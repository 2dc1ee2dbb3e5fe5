from datetime import datetime, timezone

import pytest
from starlette.responses import Response

from extractdb.auth import tokens
from extractdb.auth.credentials import CredentialStore
from extractdb.auth.errors import ConfigurationError, InvalidCredentials, RedirectRequired, ServerMisconfigured
from extractdb.auth.passwords import hash_password
from extractdb.auth.session import COOKIE_NAME, SessionManager

from conftest import START


def test_login_issues_short_lived_cookie(manager):
    directive = manager.login("admin", "secret", False)
    assert directive.name == COOKIE_NAME
    assert directive.max_age == 43200
    assert directive.httponly and directive.path == "/" and directive.samesite == "lax"
    assert directive.secure is False

    session = manager.get_session({COOKIE_NAME: directive.value})
    assert session is not None
    assert session.remember_me is False
    assert session.issued_at == START
    assert session.identity == "admin"


def test_login_remember_me_issues_30_day_cookie(manager):
    directive = manager.login("admin", "secret", True)
    assert directive.max_age == 30 * 24 * 3600
    assert manager.get_session({COOKIE_NAME: directive.value}).remember_me is True


def test_login_trims_inputs(manager):
    assert manager.login("  admin ", " secret ", False).value


@pytest.mark.parametrize("identifier,password", [("admin", "nope"), ("root", "secret"), ("root", "nope")])
def test_wrong_credentials(manager, identifier, password):
    with pytest.raises(InvalidCredentials):
        manager.login(identifier, password, False)


def test_login_without_configuration(clock):
    manager = SessionManager(CredentialStore(), clock=clock)
    with pytest.raises(ServerMisconfigured) as exc:
        manager.login("admin", "secret", False)
    assert isinstance(exc.value, ConfigurationError)


def test_login_with_hashed_password(clock):
    store = CredentialStore(identifier="admin", password=hash_password("secret"))
    manager = SessionManager(store, clock=clock)
    directive = manager.login("admin", "secret", False)
    assert manager.get_session({COOKIE_NAME: directive.value}) is not None
    with pytest.raises(InvalidCredentials):
        manager.login("admin", "other", False)


def test_secure_flag_is_carried(clock):
    manager = SessionManager(CredentialStore("admin", "secret"), cookie_secure=True, clock=clock)
    assert manager.login("admin", "secret", False).secure is True
    assert manager.logout().secure is True


def test_logout_clears_cookie_and_is_idempotent(manager):
    first = manager.logout()
    assert first.value == ""
    assert first.max_age == 0
    assert first.expires == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert manager.logout() == first


def test_missing_cookie_skips_the_codec(manager, monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("decode must not be called")

    monkeypatch.setattr(tokens, "decode", boom)
    assert manager.get_session({}) is None
    assert manager.get_session({COOKIE_NAME: ""}) is None


def test_session_expires_with_the_clock(manager, clock):
    value = manager.login("admin", "secret", False).value
    clock.advance(43200)
    assert manager.get_session({COOKIE_NAME: value}) is not None
    clock.advance(1)
    assert manager.get_session({COOKIE_NAME: value}) is None


def test_rotated_credentials_invalidate_sessions(manager, clock):
    value = manager.login("admin", "secret", True).value
    rotated = SessionManager(CredentialStore("admin", "new-secret"), clock=clock)
    renamed = SessionManager(CredentialStore("root", "secret"), clock=clock)
    assert rotated.get_session({COOKIE_NAME: value}) is None
    assert renamed.get_session({COOKIE_NAME: value}) is None


def test_require_session(manager):
    with pytest.raises(RedirectRequired) as exc:
        manager.require_session({})
    assert exc.value.location == "/login"

    value = manager.login("admin", "secret", False).value
    assert manager.require_session({COOKIE_NAME: value}).identity == "admin"


def test_cookie_directive_writes_set_cookie(manager):
    resp = manager.login("admin", "secret", False).apply(Response())
    header = resp.headers["set-cookie"]
    assert header.startswith(f"{COOKIE_NAME}=")
    attrs = [a.strip().lower() for a in header.split(";")[1:]]
    assert "max-age=43200" in attrs
    assert "httponly" in attrs
    assert "path=/" in attrs
    assert "samesite=lax" in attrs
    assert "secure" not in attrs

    cleared = manager.logout().apply(Response()).headers["set-cookie"].lower()
    assert "max-age=0" in cleared
    assert "1970" in cleared
