# ada/helpers.py
# Fonctions disponibles dans les templates (et ailleurs)
from __future__ import annotations

from datetime import date, datetime

from markupsafe import Markup

from . import security
from .globals import current_app, get_session, has_app_context, has_request_context, request
from .wrappers import Response


def e(value) -> str:
    return security.escape(value)


def escape_js(value) -> Markup:
    return Markup(security.escape_js(value))


def escape_url(value) -> str:
    return security.escape_url(value)


# -------------------------------------------------------------------
# CSRF
# -------------------------------------------------------------------
def _csrf_name() -> str:
    if has_app_context():
        return current_app.config.get("app.security.csrf_token_name", security.CSRF_SESSION_KEY)
    return security.CSRF_SESSION_KEY


def csrf_token():
    return security.generate_csrf_token()


def csrf_field() -> Markup:
    return Markup('<input type="hidden" name="{}" value="{}">').format(_csrf_name(), csrf_token())


def csrf_meta() -> Markup:
    return Markup('<meta name="csrf-token" content="{}">').format(csrf_token())


# -------------------------------------------------------------------
# Flash / anciennes saisies
# -------------------------------------------------------------------
def old(key: str, default=""):
    s = get_session()
    if s is None:
        return default
    value = (s.peek_flash("_old_input") or {}).get(key)
    return default if value is None else value


def errors(field: str | None = None):
    """Toutes les erreurs flashées, ou la première d'un champ."""
    s = get_session()
    bag = (s.peek_flash("errors") if s is not None else None) or {}
    if field is None:
        return bag
    messages = bag.get(field) or []
    return messages[0] if messages else None


def flash(key: str, default=None):
    s = get_session()
    return s.get_flash(key, default) if s is not None else default


def flash_messages(*keys) -> dict:
    """Messages flash présents (consommés), par type."""
    s = get_session()
    if s is None:
        return {}
    keys = keys or ("success", "error", "warning", "info")
    return {k: s.get_flash(k) for k in keys if s.has_flash(k)}


# -------------------------------------------------------------------
# URL
# -------------------------------------------------------------------
def url(path: str = "") -> str:
    if has_request_context():
        base = request.host_url
    elif has_app_context():
        base = current_app.config.get("app.url", "http://localhost")
    else:
        base = "http://localhost"
    path = path.rstrip("/")
    if path and not path.startswith("/"):
        path = "/" + path
    return base.rstrip("/") + path


def asset(path: str) -> str:
    return url("/" + path.lstrip("/"))


def route(name: str, **params) -> str:
    return current_app.router.url_for(name, **params)


def config(key: str, default=None):
    return current_app.config.get(key, default)


# -------------------------------------------------------------------
# Divers
# -------------------------------------------------------------------
def format_date(value, fmt: str = "%d/%m/%Y") -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    return str(value)


def redirect(url: str, status: int = 302) -> Response:
    return Response.redirect(url, status)


def back() -> Response:
    return Response.back(request if has_request_context() else None)


def template_helpers() -> dict:
    """Helpers partagés avec toutes les vues."""
    return {
        "e": e,
        "escape_js": escape_js,
        "escape_url": escape_url,
        "csrf_token": csrf_token,
        "csrf_field": csrf_field,
        "csrf_meta": csrf_meta,
        "old": old,
        "errors": errors,
        "flash": flash,
        "flash_messages": flash_messages,
        "url": url,
        "asset": asset,
        "route": route,
        "config": config,
        "format_date": format_date,
        "redirect": redirect,
        "back": back,
    }
