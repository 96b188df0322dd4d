# ada/app.py
# L'application WSGI (config, logs, base, vues, routeur, sessions)
from __future__ import annotations

import contextlib
import traceback
from pathlib import Path

from markupsafe import escape
from werkzeug.exceptions import HTTPException, InternalServerError
from werkzeug.middleware.proxy_fix import ProxyFix
from werkzeug.test import Client

from . import env
from .config import Config
from .database import Database
from .exceptions import ValidationException
from .globals import _cv_app, _cv_request
from .helpers import template_helpers
from .log import configure_logging
from .routing import Router
from .session import FileSessionStore
from .view import View
from .wrappers import Request, Response


class Application:
    request_class = Request
    response_class = Response

    def __init__(self, root_path, config_overrides: dict | None = None, name: str = "ada"):
        self.name = name
        self.root_path = Path(root_path)

        # -------------------------------------------------------------------
        # Environnement / configuration
        # -------------------------------------------------------------------
        env.load(self.root_path / ".env")
        self.config = Config(self.root_path / "config")
        self.config.load_all()
        self.config.update(config_overrides)
        self.debug = bool(self.config.get("app.debug", False))

        # -------------------------------------------------------------------
        # Logs
        # -------------------------------------------------------------------
        log_path = self.config.get("app.log.path")
        self.logger = configure_logging(
            name,
            path=self.resolve_path(log_path) if log_path else None,
            level=self.config.get("app.log.level", "debug" if self.debug else "info"),
            max_files=int(self.config.get("app.log.max_files", 30)),
            stream=bool(self.config.get("app.log.stderr", True)),
        )

        # -------------------------------------------------------------------
        # Services
        # -------------------------------------------------------------------
        self.database = Database.from_config(self.config) if self.config.get("database.url") else None

        self.view = View(
            self.resolve_path(self.config.get("app.views.path", "templates")),
            cache_path=self.resolve_path(self.config.get("app.views.cache_path", "storage/cache/views")),
            cache_enabled=bool(self.config.get("app.views.cache_enabled", True)),
        )
        self.view.share(template_helpers())

        self.router = Router()
        self.router.exception_handler = self.handle_exception

        self.session_store = FileSessionStore(
            self.resolve_path(self.config.get("app.session.path", "storage/sessions"))
        )

        self.error_handlers: dict = {}

        # Proxy (Render/Cloudflare)
        if self.config.get("app.proxy_fix"):
            self.wsgi_app = ProxyFix(self.wsgi_app, x_for=1, x_proto=1, x_host=1)

    def resolve_path(self, path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root_path / p

    def __repr__(self):
        return f"<Application {self.name!r} root={str(self.root_path)!r}>"

    # -------------------------------------------------------------------
    # Contextes
    # -------------------------------------------------------------------
    @contextlib.contextmanager
    def app_context(self):
        token = _cv_app.set(self)
        try:
            yield self
        finally:
            _cv_app.reset(token)

    @contextlib.contextmanager
    def request_context(self, environ_or_request):
        req = environ_or_request
        if not isinstance(req, Request):
            req = self.request_class(environ_or_request)
        with self.app_context():
            token = _cv_request.set(req)
            try:
                yield req
            finally:
                _cv_request.reset(token)

    # -------------------------------------------------------------------
    # Erreurs
    # -------------------------------------------------------------------
    def errorhandler(self, code: int):
        def decorator(f):
            self.error_handlers[code] = f
            return f
        return decorator

    def handle_exception(self, e: Exception) -> Response:
        if isinstance(e, ValidationException):
            return self.router.prepare_response(e.get_response())
        if isinstance(e, HTTPException):
            return self.handle_http_exception(e)
        self.logger.exception("Unhandled exception: %s", e)
        return self.handle_server_error(e)

    def _call_handler(self, handler, e: HTTPException) -> Response:
        rv = handler(e)
        if not isinstance(rv, (tuple, Response)):
            rv = (rv, e.code)
        return self.router.prepare_response(rv)

    def handle_http_exception(self, e: HTTPException) -> Response:
        # redirections levées via abort() / RequestRedirect
        if e.code is None or e.code < 400:
            return self.response_class.force_type(e.get_response())

        handler = self.error_handlers.get(e.code)
        if handler is not None:
            try:
                return self._call_handler(handler, e)
            except Exception:
                self.logger.exception("Error handler for %s failed", e.code)
                if e.code >= 500:
                    return self.fallback_error_page(e)
        return self.response_class.force_type(e.get_response())

    def handle_server_error(self, e: Exception) -> Response:
        handler = self.error_handlers.get(500)
        if handler is not None:
            try:
                return self._call_handler(handler, InternalServerError(original_exception=e))
            except Exception:
                self.logger.exception("Error handler for 500 failed")
        return self.fallback_error_page(e)

    def fallback_error_page(self, e: Exception) -> Response:
        body = "<h1 style='font-family:system-ui,Segoe UI,Arial'>500 - Internal Server Error</h1>"
        if self.debug:
            trace = "".join(traceback.format_exception(type(e), e, e.__traceback__))
            body += f"<p>{escape(str(e))}</p><pre>{escape(trace)}</pre>"
        else:
            body += "<p>Something went wrong. Please try again later.</p>"
        return self.response_class(body, status=500, content_type="text/html; charset=utf-8")

    # -------------------------------------------------------------------
    # WSGI
    # -------------------------------------------------------------------
    def handle(self, request: Request) -> Response:
        token = _cv_request.set(request)
        try:
            try:
                return self.router.dispatch(request)
            except Exception as e:
                return self.handle_exception(e)
        finally:
            _cv_request.reset(token)

    def wsgi_app(self, environ, start_response):
        request = self.request_class(environ)
        with self.app_context():
            response = self.handle(request)
            return response(environ, start_response)

    def __call__(self, environ, start_response):
        return self.wsgi_app(environ, start_response)

    def test_client(self, use_cookies: bool = True) -> Client:
        return Client(self, response_wrapper=self.response_class, use_cookies=use_cookies)

    def run(self, host: str = "127.0.0.1", port: int = 5000, debug: bool | None = None, **options):
        from werkzeug.serving import run_simple

        debug = self.debug if debug is None else debug
        options.setdefault("use_reloader", debug)
        self.logger.info("Serving %s on http://%s:%s", self.name, host, port)
        run_simple(host, port, self, **options)

    def url_for(self, name: str, **params) -> str:
        return self.router.url_for(name, **params)
