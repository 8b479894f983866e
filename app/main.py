"""FastAPI app serving the consolidated Custom Data admin menu."""

from __future__ import annotations

import os
import sys
import time
import logging
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


_load_env_file(ROOT / "app" / ".env")

from app.auth import SupabaseAuthMiddleware, auth_disabled
from app.capabilities import role_can
from app.db import get_db_ms, get_db_stats, reset_db_ms
from app.nonces import NonceError, create_nonce, verify_nonce
from app.stores import MemoryEntityCatalog, MemoryFieldGroupStore, MemoryOptionStore, load_seed_file
from app.stores_db import DbEntityCatalog, DbFieldGroupStore, DbOptionStore, reset_org_id, set_org_id
from app.template_render import render_page
from admin_menu import compose_admin_menu
from entity_catalog import manageable_entity_types
from field_groups import coerce_field_groups, format_location_rules
from managed_selection import (
    SAVE_NONCE_ACTION,
    AuthContext,
    AuthError,
    load_managed_selection,
    save_managed_selection,
)
from menu_organizer import (
    ORDER_LABEL,
    ORDER_SELECTION,
    build_menu_tree,
    find_node,
    managed_descriptors,
    parse_target,
    root_node,
)


app = FastAPI(title="Custom Data Organizer")
logger = logging.getLogger("cdo")
logging.basicConfig(level=logging.INFO)

SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
SUPABASE_AUD = os.getenv("SUPABASE_JWT_AUD", "").strip() or None
DISABLE_AUTH = auth_disabled()
logger.info("auth_disabled=%s supabase_url=%s supabase_aud=%s", DISABLE_AUTH, SUPABASE_URL, SUPABASE_AUD)

USE_DB = os.getenv("USE_DB", "").strip() == "1"
ADMIN_BASE_URL = os.getenv("CDO_ADMIN_BASE_URL", "/wp-admin/").strip() or "/wp-admin/"
MENU_ORDER = os.getenv("CDO_MENU_ORDER", ORDER_SELECTION).strip().lower()
if MENU_ORDER not in (ORDER_SELECTION, ORDER_LABEL):
    logger.warning("menu_order_invalid value=%s", MENU_ORDER)
    MENU_ORDER = ORDER_SELECTION
REQ_SLOW_MS = float(os.getenv("CDO_REQ_SLOW_MS", "250"))
_PAGE_ROUTES = {
    "overview": "/admin/organizer",
    "settings": "/admin/organizer/settings",
    "field_groups": "/admin/field-groups",
}

if USE_DB:
    option_store = DbOptionStore()
    catalog = DbEntityCatalog()
    field_group_store = DbFieldGroupStore()
else:
    _seed = load_seed_file(os.environ["CDO_CATALOG_PATH"]) if os.getenv("CDO_CATALOG_PATH") else {}
    option_store = MemoryOptionStore()
    catalog = MemoryEntityCatalog(_seed.get("entity_types"))
    field_group_store = MemoryFieldGroupStore(_seed.get("field_groups"))


def _error_response(code: str, message: str, path: str | None = None, detail: dict | None = None, status: int = 400) -> JSONResponse:
    body = {
        "ok": False,
        "errors": [{"code": code, "message": message, "path": path, "detail": detail}],
        "warnings": [],
    }
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, warnings: list | None = None, status: int = 200) -> JSONResponse:
    body = {"ok": True, **payload, "errors": [], "warnings": warnings or []}
    return JSONResponse(jsonable_encoder(body), status_code=status)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error path=%s", request.url.path)
    return _error_response("INTERNAL_ERROR", "Unexpected server error", detail={"error": str(exc)}, status=500)


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    reset_db_ms()
    start = time.perf_counter()
    response = await call_next(request)
    total_ms = (time.perf_counter() - start) * 1000
    auth_ms = getattr(request.state, "auth_ms", 0.0)
    db_ms = get_db_ms()
    logger.info(
        "%s %s %s total_ms=%.1f auth_ms=%.1f db_ms=%.1f db_q=%s",
        request.method,
        request.url.path,
        response.status_code,
        total_ms,
        auth_ms,
        db_ms,
        get_db_stats().get("queries", 0),
    )
    if total_ms >= REQ_SLOW_MS:
        logger.warning("slow_request method=%s path=%s total_ms=%.1f", request.method, request.url.path, total_ms)
    return response


def _resolve_actor(request: Request) -> dict | JSONResponse:
    user = getattr(request.state, "user", None)
    if DISABLE_AUTH and (not user or not user.get("id")):
        user = {
            "id": "dev-user",
            "email": "dev@example.com",
            "role": os.getenv("CDO_DEV_ROLE", "administrator").strip() or "administrator",
            "capabilities": [],
            "claims": {},
        }
    if not user or not user.get("id"):
        return _error_response("AUTH_REQUIRED", "Authenticated user required", status=401)
    return {**user, "site_id": request.headers.get("X-Site-Id") or "default"}


class ActorContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or request.url.path in {"/health"}:
            return await call_next(request)
        actor = _resolve_actor(request)
        if isinstance(actor, JSONResponse):
            return actor
        request.state.actor = actor
        token = set_org_id(actor.get("site_id") or "default")
        try:
            return await call_next(request)
        finally:
            reset_org_id(token)


app.add_middleware(ActorContextMiddleware)
if not DISABLE_AUTH:
    if not SUPABASE_URL:
        raise RuntimeError("SUPABASE_URL is required for auth")
    app.add_middleware(SupabaseAuthMiddleware, supabase_url=SUPABASE_URL, audience=SUPABASE_AUD)


def _auth_context(request: Request, nonce: str | None = None) -> AuthContext:
    return AuthContext(
        actor=getattr(request.state, "actor", None),
        can_fn=role_can,
        nonce=nonce,
        verify_nonce=verify_nonce,
    )


def _organizer_state(request: Request) -> dict:
    # Loaded once per request so every consumer sees the same selection.
    state = getattr(request.state, "organizer", None)
    if state is None:
        state = {
            "catalog": catalog.list_entity_types(),
            "selection": load_managed_selection(option_store),
        }
        request.state.organizer = state
    return state


def admin_url(path: str) -> str:
    return ADMIN_BASE_URL.rstrip("/") + "/" + path.lstrip("/")


def _target_url(target: str) -> str | None:
    parsed = parse_target(target)
    if parsed is None:
        return None
    kind, value = parsed
    if kind == "page":
        return _PAGE_ROUTES.get(value)
    return admin_url(value)


def _forbidden(capability: str) -> JSONResponse:
    return _error_response("AUTH_FORBIDDEN", "Sorry, you are not allowed to access this page.", detail={"capability": capability}, status=403)


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


@app.get("/admin/menu")
def admin_menu(request: Request):
    state = _organizer_state(request)
    composed = compose_admin_menu(
        state["catalog"],
        state["selection"],
        _auth_context(request),
        field_groups=field_group_store.list_field_groups(),
        order=MENU_ORDER,
    )
    return _ok_response({**composed, "selection": list(state["selection"])})


@app.get("/admin/organizer", response_class=HTMLResponse)
def organizer_overview(request: Request):
    auth = _auth_context(request)
    root = root_node()
    if not auth.can(root.required_capability):
        return _forbidden(root.required_capability)
    state = _organizer_state(request)
    nodes = build_menu_tree(state["catalog"], state["selection"], auth, order=MENU_ORDER)
    headings = {d.slug: d.menu_label for d in managed_descriptors(state["catalog"], state["selection"])}
    groups: list[dict[str, Any]] = []
    for node in nodes:
        if not node.group:
            continue
        if not groups or groups[-1]["slug"] != node.group:
            groups.append({"slug": node.group, "label": headings.get(node.group, node.label), "leaves": []})
        groups[-1]["leaves"].append({"page_title": node.page_title or node.label})
    settings_url = _PAGE_ROUTES["settings"] if auth.can("manage_options") else None
    html = render_page("overview.html", {"title": "Custom Data Organizer", "groups": groups, "settings_url": settings_url})
    return HTMLResponse(html)


def _render_settings(request: Request, selection: tuple[str, ...], error: str | None = None, saved: bool = False, status: int = 200) -> HTMLResponse:
    state = _organizer_state(request)
    selected = set(selection)
    choices = [
        {"slug": d.slug, "label": d.menu_label, "checked": d.slug in selected}
        for d in manageable_entity_types(state["catalog"])
    ]
    actor = getattr(request.state, "actor", None)
    try:
        nonce = create_nonce(SAVE_NONCE_ACTION, actor)
    except NonceError as exc:
        # Without a signing key every save is rejected; the form still renders.
        logger.warning("nonce_unavailable error=%s", exc)
        nonce = ""
    html = render_page(
        "settings.html",
        {
            "title": "Custom Data Settings",
            "error": error,
            "saved": saved,
            "action_url": _PAGE_ROUTES["settings"],
            "nonce": nonce,
            "choices": choices,
        },
    )
    return HTMLResponse(html, status_code=status)


@app.get("/admin/organizer/settings", response_class=HTMLResponse)
def organizer_settings(request: Request):
    auth = _auth_context(request)
    if not auth.can("manage_options"):
        return _forbidden("manage_options")
    return _render_settings(request, _organizer_state(request)["selection"])


@app.post("/admin/organizer/settings", response_class=HTMLResponse)
async def organizer_settings_save(request: Request):
    form = await request.form()
    candidates = list(form.getlist("managed_types")) + list(form.getlist("managed_types[]"))
    auth = _auth_context(request, nonce=form.get("_wpnonce"))
    state = _organizer_state(request)
    try:
        selection = save_managed_selection(option_store, candidates, auth)
    except AuthError as exc:
        logger.warning("selection_save_rejected code=%s actor=%s", exc.code, (auth.actor or {}).get("id"))
        return _render_settings(request, state["selection"], error=exc.message, status=403)
    state["selection"] = selection
    return _render_settings(request, selection, saved=True)


@app.get("/admin/organizer/go/{node_id}")
def organizer_go(node_id: str, request: Request):
    state = _organizer_state(request)
    node = find_node(build_menu_tree(state["catalog"], state["selection"]), node_id)
    if node is None:
        return _error_response("MENU_NODE_NOT_FOUND", "Menu entry not found", "node_id", status=404)
    if not _auth_context(request).can(node.required_capability):
        return _forbidden(node.required_capability)
    url = _target_url(node.target)
    if url is None:
        return _error_response("MENU_NODE_NOT_FOUND", "Menu entry has no target", "node_id", status=404)
    return RedirectResponse(url, status_code=302)


@app.get("/admin/field-groups", response_class=HTMLResponse)
def field_groups_dashboard(request: Request):
    if not _auth_context(request).can("manage_options"):
        return _forbidden("manage_options")
    groups = [
        {
            "title": group.title,
            "key": group.key,
            "location": format_location_rules(group.location),
            "edit_url": admin_url(group.edit_path),
        }
        for group in coerce_field_groups(field_group_store.list_field_groups())
    ]
    return HTMLResponse(render_page("field_groups.html", {"title": "SCF Admin Organizer", "groups": groups}))


@app.get("/admin/field-groups/{group_id}/edit")
def field_group_edit(group_id: int, request: Request):
    if not _auth_context(request).can("manage_options"):
        return _forbidden("manage_options")
    group = field_group_store.get(group_id)
    if group is None:
        return _error_response("FIELD_GROUP_NOT_FOUND", "Invalid field group.", "group_id", status=404)
    return RedirectResponse(admin_url(group.edit_path), status_code=302)
