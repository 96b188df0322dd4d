# ada/globals.py
# Objets de contexte (application, requête, session)
from __future__ import annotations

from contextvars import ContextVar

from werkzeug.local import LocalProxy

_cv_app: ContextVar = ContextVar("ada.app")
_cv_request: ContextVar = ContextVar("ada.request")

current_app = LocalProxy(_cv_app, unbound_message="Working outside of application context.")
request = LocalProxy(_cv_request, unbound_message="Working outside of request context.")
session = LocalProxy(_cv_request, "session", unbound_message="Working outside of request context.")


def has_app_context() -> bool:
    return _cv_app.get(None) is not None


def has_request_context() -> bool:
    return _cv_request.get(None) is not None


def get_session():
    """Session de la requête courante, ou None (hors requête / sans middleware)."""
    req = _cv_request.get(None)
    return getattr(req, "session", None) if req is not None else None
