# ada/wrappers.py
# Request / Response au-dessus de werkzeug
from __future__ import annotations

import json
from pathlib import Path

import werkzeug.wrappers
from werkzeug.datastructures import ImmutableMultiDict
from werkzeug.test import create_environ
from werkzeug.utils import send_file

from .globals import _cv_request, current_app, get_session


class Request(werkzeug.wrappers.Request):
    """Requête HTTP ; les paramètres de route sont posés par le routeur."""

    parameter_storage_class = ImmutableMultiDict

    def __init__(self, environ, *args, **kwargs):
        super().__init__(environ, *args, **kwargs)
        self.route_params: dict = {}
        self.session = None

    # ---- entrées -------------------------------------------------------
    def input(self, key, default=None):
        if key in self.form:
            return self.form.get(key)
        return self.args.get(key, default)

    def all(self) -> dict:
        data = self.args.to_dict()
        data.update(self.form.to_dict())
        return data

    def only(self, keys) -> dict:
        data = self.all()
        return {k: data[k] for k in keys if data.get(k) is not None}

    def except_(self, keys) -> dict:
        data = self.all()
        for k in keys:
            data.pop(k, None)
        return data

    def has(self, key) -> bool:
        return self.all().get(key) is not None

    # ---- méthode / en-têtes --------------------------------------------
    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def is_put(self) -> bool:
        return self.method == "PUT"

    @property
    def is_delete(self) -> bool:
        return self.method == "DELETE"

    @property
    def is_ajax(self) -> bool:
        return (self.headers.get("X-Requested-With") or "").lower() == "xmlhttprequest"

    def ip(self) -> str:
        if self.headers.get("Client-Ip"):
            return self.headers["Client-Ip"]
        forwarded = self.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return self.remote_addr or "0.0.0.0"

    def header(self, name, default=None):
        return self.headers.get(name, default)

    # ---- paramètres de route -------------------------------------------
    def set_route_param(self, key, value) -> None:
        self.route_params[key] = value

    def route_param(self, key, default=None):
        return self.route_params.get(key, default)


class Response(werkzeug.wrappers.Response):
    """Réponse HTTP, HTML par défaut."""

    default_mimetype = "text/html"

    @property
    def content(self) -> str:
        return self.get_data(as_text=True)

    # ---- fabriques -----------------------------------------------------
    @classmethod
    def redirect(cls, url: str, status: int = 302) -> "Response":
        response = cls("", status=status)
        response.headers["Location"] = url
        return response

    @classmethod
    def json(cls, data, status: int = 200) -> "Response":
        return cls(json.dumps(data, default=str), status=status, mimetype="application/json")

    @classmethod
    def view(cls, template: str, data: dict | None = None, status: int = 200) -> "Response":
        content = current_app.view.render(template, data or {})
        return cls(content, status=status, content_type="text/html; charset=utf-8")

    @classmethod
    def back(cls, request=None, fallback: str = "/") -> "Response":
        referer = request.referrer if request is not None else None
        return cls.redirect(referer or fallback)

    @classmethod
    def download(cls, file_path, name: str | None = None, request=None) -> "Response":
        return cls._send(file_path, request, as_attachment=True, download_name=name,
                         mimetype="application/octet-stream")

    @classmethod
    def file(cls, file_path, mimetype: str | None = None, request=None) -> "Response":
        return cls._send(file_path, request, mimetype=mimetype)

    @classmethod
    def _send(cls, file_path, request=None, **kwargs) -> "Response":
        p = Path(file_path)
        if not p.is_file():
            raise FileNotFoundError(f"File not found: {p}")
        if request is None:
            request = _cv_request.get(None)
        # hors requête (CLI, tests) : environ minimal
        environ = request.environ if request is not None else create_environ()
        return send_file(p, environ, conditional=True, response_class=cls, **kwargs)

    @classmethod
    def no_content(cls) -> "Response":
        return cls("", status=204)

    @classmethod
    def created(cls, data=None, location: str | None = None) -> "Response":
        response = cls.json(data, 201) if data is not None else cls("", status=201)
        if location is not None:
            response.headers["Location"] = location
        return response

    # ---- chaînage --------------------------------------------------------
    def with_flash(self, key, value) -> "Response":
        s = get_session()
        if s is not None:
            s.flash(key, value)
        return self

    def with_errors(self, errors: dict) -> "Response":
        return self.with_flash("errors", errors)

    def with_input(self, data: dict | None = None) -> "Response":
        if data is None:
            from .globals import has_request_context, request
            data = request.all() if has_request_context() else {}
        return self.with_flash("_old_input", data)

    def with_headers(self, headers: dict) -> "Response":
        for name, value in headers.items():
            self.headers[name] = value
        return self

    def with_cookie(self, name, value, max_age=None, path="/", domain=None,
                    secure=False, httponly=True, samesite="Lax") -> "Response":
        self.set_cookie(name, value, max_age=max_age, path=path, domain=domain,
                        secure=secure, httponly=httponly, samesite=samesite)
        return self
