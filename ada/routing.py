# ada/routing.py
# Table de routes, correspondance linéaire et génération d'URL
from __future__ import annotations

import contextlib
import logging
import re
from urllib.parse import quote, urlencode

from werkzeug.exceptions import NotFound
from werkzeug.utils import import_string

from .exceptions import RouteNotFound, RoutingError
from .middleware import build_pipeline
from .wrappers import Response

_logger = logging.getLogger(__name__)

_param_re = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


def normalize_uri(uri: str) -> str:
    path = (uri or "").split("?", 1)[0].strip("/")
    return "/" + path if path else "/"


def compile_pattern(uri: str) -> re.Pattern:
    """'/devoirs/{id}' → ^/devoirs/(?P<id>[^/]+)$ (parties littérales échappées)."""
    parts = []
    pos = 0
    for m in _param_re.finditer(uri):
        parts.append(re.escape(uri[pos:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        pos = m.end()
    parts.append(re.escape(uri[pos:]))
    return re.compile("^" + "".join(parts) + "$")


class Route:
    def __init__(self, method: str, uri: str, action, name: str | None = None,
                 middleware=None):
        self.method = method.upper()
        self.uri = normalize_uri(uri)
        self.action = action
        self.name = name
        self.middleware = list(middleware or [])
        self.pattern = compile_pattern(self.uri)
        self.parameters = _param_re.findall(self.uri)

    def matches_method(self, method: str) -> bool:
        if self.method == "ANY" or self.method == method:
            return True
        return self.method == "GET" and method == "HEAD"

    def match(self, method: str, path: str):
        if not self.matches_method(method):
            return None
        m = self.pattern.match(path)
        return m.groupdict() if m else None

    @property
    def action_name(self) -> str:
        if isinstance(self.action, str):
            return self.action
        return getattr(self.action, "__qualname__", repr(self.action))

    def __repr__(self):
        return f"<Route {self.method} {self.uri} name={self.name!r}>"


class Router:
    def __init__(self):
        self.routes: list[Route] = []
        self.named: dict[str, Route] = {}
        self.global_middleware: list = []
        self.middleware_aliases: dict = {}
        # noms courts → classes ou chemins d'import ("HomeController" → ...)
        self.controllers: dict = {}
        # exception → réponse, posé par l'application
        self.exception_handler = None
        self._group_stack: list[tuple[str, list]] = []

    # -------------------------------------------------------------------
    # Enregistrement
    # -------------------------------------------------------------------
    def add_route(self, method, uri, action, name=None, middleware=None) -> Route:
        prefix = "".join(p for p, _ in self._group_stack)
        group_mw = [m for _, mws in self._group_stack for m in mws]
        route = Route(method, prefix + "/" + uri.lstrip("/"), action, name,
                      group_mw + list(middleware or []))
        self.routes.append(route)
        if name:
            self.named[name] = route
        return route

    def _register(self, method, uri, action, name, middleware):
        if action is None:
            def decorator(f):
                self.add_route(method, uri, f, name, middleware)
                return f
            return decorator
        return self.add_route(method, uri, action, name, middleware)

    def get(self, uri, action=None, name=None, middleware=None):
        return self._register("GET", uri, action, name, middleware)

    def post(self, uri, action=None, name=None, middleware=None):
        return self._register("POST", uri, action, name, middleware)

    def put(self, uri, action=None, name=None, middleware=None):
        return self._register("PUT", uri, action, name, middleware)

    def delete(self, uri, action=None, name=None, middleware=None):
        return self._register("DELETE", uri, action, name, middleware)

    def patch(self, uri, action=None, name=None, middleware=None):
        return self._register("PATCH", uri, action, name, middleware)

    def any(self, uri, action=None, name=None, middleware=None):
        return self._register("ANY", uri, action, name, middleware)

    @contextlib.contextmanager
    def group(self, prefix: str = "", middleware=None):
        prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self._group_stack.append((prefix, list(middleware or [])))
        try:
            yield self
        finally:
            self._group_stack.pop()

    def load(self, table, middleware=None) -> None:
        """
        Table de routes : tuples (méthode, uri, action[, nom[, middlewares]]).
        """
        with self.group("", middleware):
            for entry in table:
                method, uri, action, *rest = entry
                name = rest[0] if rest else None
                mws = rest[1] if len(rest) > 1 else None
                self.add_route(method, uri, action, name, mws)

    def set_global_middleware(self, middleware) -> None:
        self.global_middleware = list(middleware)

    # -------------------------------------------------------------------
    # Correspondance / dispatch
    # -------------------------------------------------------------------
    def match(self, method: str, path: str):
        path = normalize_uri(path)
        for route in self.routes:
            params = route.match(method.upper(), path)
            if params is not None:
                return route, params
        return None, None

    def dispatch(self, request) -> Response:
        route, params = self.match(request.method, request.path)
        middleware = list(self.global_middleware)

        if route is None:
            _logger.warning("Route not found: %s %s", request.method, request.path)

            def destination(req):
                raise NotFound()
        else:
            for key, value in params.items():
                request.set_route_param(key, value)
            middleware += route.middleware

            def destination(req):
                return self.prepare_response(self.call_action(route, req, params))

        # le pipeline global tourne aussi sur un 404 (session, flash...)
        pipeline = build_pipeline(middleware, destination, self.middleware_aliases,
                                  self.exception_handler)
        return self.prepare_response(pipeline(request))

    def _split_action(self, action):
        if not isinstance(action, str) or "@" not in action:
            raise RoutingError(f"Invalid route action: {action!r}")
        controller, method = action.rsplit("@", 1)
        target = self.controllers.get(controller, controller)
        if isinstance(target, str):
            try:
                target = import_string(target)
            except ImportError as e:
                raise RoutingError(f"Controller not found: {controller}") from e
        if not callable(getattr(target, method, None)):
            raise RoutingError(f"Method {method} not found in controller {controller}")
        return target, method

    def check_action(self, action) -> None:
        """Lève RoutingError si l'action n'est pas résoluble (sans l'instancier)."""
        if not callable(action):
            self._split_action(action)

    def resolve_action(self, action):
        if callable(action):
            return action
        target, method = self._split_action(action)
        return getattr(target(), method)

    def call_action(self, route: Route, request, params: dict):
        handler = self.resolve_action(route.action)
        return handler(request, **params)

    @staticmethod
    def prepare_response(rv) -> Response:
        if isinstance(rv, Response):
            return rv

        status = None
        headers = None
        if isinstance(rv, tuple):
            if len(rv) == 3:
                rv, status, headers = rv
            elif len(rv) == 2:
                rv, status = rv
            else:
                raise RoutingError("Route action returned an invalid tuple")

        if isinstance(rv, Response):
            response = rv
        elif isinstance(rv, str):
            response = Response(rv, content_type="text/html; charset=utf-8")
        elif isinstance(rv, (dict, list)):
            response = Response.json(rv)
        elif rv is None:
            raise RoutingError("Route action returned None")
        elif hasattr(rv, "status_code") and hasattr(rv, "headers"):
            # réponse werkzeug "pure" (ex. werkzeug.utils.redirect)
            response = Response.force_type(rv)
        else:
            raise RoutingError(f"Invalid response type: {type(rv).__name__}")

        if status is not None:
            response.status_code = int(status)
        if headers:
            response.headers.update(headers)
        return response

    # -------------------------------------------------------------------
    # Génération d'URL
    # -------------------------------------------------------------------
    def url_for(self, name: str, **params) -> str:
        route = self.named.get(name)
        if route is None:
            raise RouteNotFound(f"Route [{name}] not defined.")

        missing = [p for p in route.parameters if params.get(p) is None]
        if missing:
            raise RouteNotFound(
                f"Missing parameter(s) {', '.join(missing)} for route [{name}]."
            )

        def _sub(m):
            return quote(str(params[m.group(1)]), safe="")

        url = _param_re.sub(_sub, route.uri)
        extra = {k: v for k, v in params.items()
                 if v is not None and k not in route.parameters}
        if extra:
            url += "?" + urlencode(extra)
        return url

    def has_route(self, name: str) -> bool:
        return name in self.named
