# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from bson.errors import BSONError
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from extractdb.auth.credentials import CredentialStore
from extractdb.auth.errors import InvalidCredentials, RedirectRequired, ServerMisconfigured
from extractdb.auth.session import SessionManager
from extractdb.config import Settings, load_settings
from extractdb.connections import ConnectionResolutionError, public_options, resolve_mongo_uri
from extractdb.core.utils import as_bool, clean_str
from extractdb.gate import PROTECTED_ROOT, RETURN_PARAM, decide, is_static_asset, safe_return_target
from extractdb.permissions import (
    Unauthorized,
    get_session_manager,
    get_settings,
    require_api_session,
    require_session,
)
from extractdb.services import archive_service, mongo_service
from extractdb.services.mongo_service import InvalidRequest

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def get_client_factory() -> Callable[..., Any]:
    """MongoDB client constructor; overridden in tests."""
    return MongoClient


def _error(error: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": error, **extra}, status_code=status_code)


def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session."""
    base_ctx = {"session": getattr(request.state, "session", None)}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code)


def _is_form(request: Request) -> bool:
    ctype = request.headers.get("content-type", "").lower()
    return ctype.startswith(FORM_TYPES)


async def _read_body(request: Request) -> Dict[str, Any]:
    if _is_form(request):
        form = await request.form()
        return {k: v for k, v in form.items()}
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidRequest("Invalid request payload.") from e
    if not isinstance(body, dict):
        raise InvalidRequest("Invalid request payload.")
    return body


def _require(value: str, message: str) -> str:
    if not value:
        raise InvalidRequest(message)
    return value


async def _run_mongo(failure: str, work: Callable[[], Any]) -> Response:
    """Run blocking driver work off the event loop and map failures to JSON errors."""
    try:
        result = await run_in_threadpool(work)
    except ConnectionResolutionError as e:
        return _error(e.message, e.status_code)
    except InvalidRequest as e:
        return _error(str(e), 400)
    except (PyMongoError, BSONError) as e:
        logger.exception(failure)
        return _error(failure, 500, message=str(e))
    if isinstance(result, Response):
        return result
    return JSONResponse(result)


def create_app(settings: Optional[Settings] = None, *, clock: Callable[[], float] = time.time) -> FastAPI:
    settings = settings or load_settings()
    manager = SessionManager(
        CredentialStore.from_settings(settings),
        cookie_secure=settings.cookie_secure,
        clock=clock,
    )

    app = FastAPI(title="MongoDB Collection Extractor")
    app.state.settings = settings
    app.state.session_manager = manager

    if not manager.credentials.configured:
        logger.warning("ADMIN_IDENTIFIER/ADMIN_PASSWORD are not set; nobody can log in.")

    @app.middleware("http")
    async def _session_gate(request: Request, call_next):
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)
        session = manager.get_session(request.cookies)
        request.state.session = session
        decision = decide(path, session is not None)
        if decision.redirect:
            return RedirectResponse(url=decision.location, status_code=303)
        return await call_next(request)

    @app.exception_handler(RedirectRequired)
    async def _redirect_required(request: Request, exc: RedirectRequired):
        return RedirectResponse(url=exc.location, status_code=303)

    @app.exception_handler(Unauthorized)
    async def _unauthorized(request: Request, exc: Unauthorized):
        return _error("Unauthorized", 401)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    # ------------------ Pages ------------------

    @app.get("/")
    def home():
        return RedirectResponse(url=PROTECTED_ROOT, status_code=303)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request):
        return_to = request.query_params.get(RETURN_PARAM, "")
        return _render(request, "login.html", {"return_to": return_to, "error": ""})

    @app.get("/admin", response_class=HTMLResponse)
    def admin_home(request: Request, session=Depends(require_session), settings: Settings = Depends(get_settings)):
        return _render(
            request,
            "admin.html",
            {"identity": session.identity, "connections": public_options(settings.connections)},
        )

    # ------------------ Auth API ------------------

    @app.post("/api/auth/login")
    async def login_post(request: Request, manager: SessionManager = Depends(get_session_manager)):
        is_form = _is_form(request)
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        identifier = clean_str(body, "identifier")
        password = clean_str(body, "password")
        remember_me = as_bool(body.get("rememberMe"))
        return_to = clean_str(body, RETURN_PARAM)

        def _failed(message: str, status_code: int):
            if is_form:
                ctx = {"return_to": return_to, "error": message, "identifier": identifier}
                return _render(request, "login.html", ctx, status_code=status_code)
            return _error(message, status_code)

        if not identifier or not password:
            return _failed("Identifier and password are required.", 400)

        try:
            directive = await run_in_threadpool(manager.login, identifier, password, remember_me)
        except ServerMisconfigured:
            logger.error("Login attempted but admin credentials are not configured")
            return _failed("Admin credentials are not configured on the server.", 500)
        except InvalidCredentials:
            logger.warning("Failed admin login from %s", request.client.host if request.client else "?")
            return _failed("Invalid credentials.", 401)

        logger.info("Admin logged in (remember_me=%s)", remember_me)
        if is_form:
            resp = RedirectResponse(url=safe_return_target(return_to), status_code=303)
        else:
            resp = JSONResponse({"ok": True})
        return directive.apply(resp)

    @app.post("/api/auth/logout")
    def logout_post(request: Request, manager: SessionManager = Depends(get_session_manager)):
        if _is_form(request):
            resp = RedirectResponse(url="/login", status_code=303)
        else:
            resp = JSONResponse({"ok": True})
        return manager.logout().apply(resp)

    @app.get("/api/auth/session")
    def session_get(request: Request):
        session = getattr(request.state, "session", None)
        if session is None:
            return {"authenticated": False}
        expires = datetime.fromtimestamp(session.expires_at, tz=timezone.utc)
        return {
            "authenticated": True,
            "session": {"rememberMe": session.remember_me, "expiresAt": expires.isoformat()},
        }

    @app.get("/api/health")
    def health():
        return {"status": "ok"}

    # ------------------ MongoDB API ------------------

    def _uri(body: Dict[str, Any]) -> str:
        return resolve_mongo_uri(
            clean_str(body, "mongoUri"),
            clean_str(body, "preconfiguredMongoUriId"),
            settings.connections,
        )

    def _client(uri: str, factory):
        return mongo_service.open_client(uri, factory=factory, timeout_ms=settings.mongo_timeout_ms)

    @app.get("/api/connections")
    def connections_get(session=Depends(require_api_session)):
        return {"connections": public_options(settings.connections)}

    @app.post("/api/databases")
    async def databases_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            with _client(uri, factory) as client:
                return {"databases": mongo_service.list_database_names(client)}

        return await _run_mongo("Failed to load databases", work)

    @app.post("/api/collections")
    async def collections_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            db_name = _require(clean_str(body, "databaseName"), "Database name is required")
            with _client(uri, factory) as client:
                return {"collections": mongo_service.list_collection_names(client[db_name])}

        return await _run_mongo("Failed to load collections", work)

    @app.post("/api/view")
    async def view_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            db_name = _require(clean_str(body, "databaseName"), "Database name is required")
            all_collections = as_bool(body.get("allCollections"))
            collection_name = clean_str(body, "collectionName")
            if not all_collections:
                _require(collection_name, "Collection name is required when not loading all collections")
            with _client(uri, factory) as client:
                previews = mongo_service.preview(
                    client[db_name], collection_name=collection_name, all_collections=all_collections
                )
                return {"collections": previews}

        return await _run_mongo("Failed to load collection previews", work)

    @app.post("/api/extract")
    async def extract_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            db_name = _require(clean_str(body, "databaseName"), "Database name is required")
            all_collections = as_bool(body.get("allCollections"))
            collection_name = clean_str(body, "collectionName")
            if not all_collections:
                _require(collection_name, "Collection name is required when not extracting all collections")
            with _client(uri, factory) as client:
                dumps = mongo_service.extract(
                    client[db_name],
                    collection_name=collection_name,
                    all_collections=all_collections,
                    limit_to_3=as_bool(body.get("limitTo3")),
                )
            return archive_service.extraction_response(dumps)

        return await _run_mongo("Failed to extract data", work)

    @app.post("/api/search")
    async def search_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            db_name = _require(clean_str(body, "databaseName"), "Database name is required")
            collection_name = _require(clean_str(body, "collectionName"), "Collection name is required")
            mode = "text" if clean_str(body, "mode").lower() == "text" else "json"
            filter_ = mongo_service.build_search_filter(
                mode, query=clean_str(body, "query"), text=clean_str(body, "text")
            )
            with _client(uri, factory) as client:
                return {"documents": mongo_service.search(client[db_name], collection_name, filter_)}

        return await _run_mongo("Failed to execute search", work)

    @app.post("/api/edit")
    async def edit_post(request: Request, session=Depends(require_api_session), factory=Depends(get_client_factory)):
        try:
            body = await _read_body(request)
        except InvalidRequest as e:
            return _error(str(e), 400)

        def work():
            uri = _uri(body)
            db_name = _require(clean_str(body, "databaseName"), "Database name is required")
            collection_name = _require(clean_str(body, "collectionName"), "Collection name is required")
            action = "insert" if body.get("action") == "insert" else "sample"
            document = mongo_service.validate_document(body.get("document")) if action == "insert" else None
            with _client(uri, factory) as client:
                db = client[db_name]
                if action == "sample":
                    return {"sample": mongo_service.sample_document(db, collection_name)}
                acknowledged, inserted_id = mongo_service.insert_document(db, collection_name, document)
                return {"success": acknowledged, "insertedId": str(inserted_id)}

        return await _run_mongo("Failed to process the edit request", work)

    return app


app = create_app()
