from __future__ import annotations

from datetime import date, datetime

import pytest
from markupsafe import Markup
from werkzeug.http import parse_options_header
from werkzeug.test import EnvironBuilder

from ada import Request, Response, helpers
from ada.session import Session


def make_request(path="/", method="GET", **kwargs):
    return Request(EnvironBuilder(path=path, method=method, **kwargs).get_environ())


class TestRequest:

    def test_input_prefers_form_then_query(self):
        req = make_request("/?q=1&name=query", "POST", data={"name": "form"})
        assert req.input("name") == "form"
        assert req.input("q") == "1"
        assert req.input("missing", "d") == "d"
        assert req.all() == {"q": "1", "name": "form"}

    def test_only_except_has(self):
        req = make_request("/?a=1&b=2&c=3")
        assert req.only(["a", "z"]) == {"a": "1"}
        assert req.except_(["a"]) == {"b": "2", "c": "3"}
        assert req.has("b")
        assert not req.has("z")

    def test_method_flags(self):
        req = make_request("/", "PUT", headers={"X-Requested-With": "XMLHttpRequest"})
        assert req.is_put and req.is_ajax
        assert not (req.is_get or req.is_post or req.is_delete)

    def test_ip(self):
        assert make_request(headers={"Client-Ip": "1.1.1.1"}).ip() == "1.1.1.1"
        assert make_request(headers={"X-Forwarded-For": "2.2.2.2, 10.0.0.1"}).ip() == "2.2.2.2"
        assert make_request(environ_base={"REMOTE_ADDR": "3.3.3.3"}).ip() == "3.3.3.3"

    def test_header_and_route_params(self):
        req = make_request(headers={"X-Token": "t"})
        assert req.header("X-Token") == "t"
        assert req.header("X-Missing", "d") == "d"
        req.set_route_param("id", "4")
        assert req.route_param("id") == "4"
        assert req.route_param("other", 0) == 0
        assert req.session is None


class TestResponse:

    def test_defaults(self):
        response = Response("<p>x</p>")
        assert response.mimetype == "text/html"
        assert response.content == "<p>x</p>"

    def test_factories(self):
        assert Response.redirect("/a").headers["Location"] == "/a"
        assert Response.redirect("/a", 301).status_code == 301
        assert Response.no_content().status_code == 204

        payload = Response.json({"when": date(2024, 1, 2)}, 202)
        assert payload.status_code == 202
        assert payload.get_json() == {"when": "2024-01-02"}

        created = Response.created({"id": 1}, "/items/1")
        assert created.status_code == 201
        assert created.headers["Location"] == "/items/1"

    def test_back_uses_referrer(self):
        req = make_request(headers={"Referer": "/from"})
        assert Response.back(req).headers["Location"] == "/from"
        assert Response.back(make_request(), "/home").headers["Location"] == "/home"

    def test_download_and_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        download = Response.download(path, "renamed.txt")
        assert isinstance(download, Response)
        assert parse_options_header(download.headers["Content-Disposition"]) == (
            "attachment", {"filename": "renamed.txt"},
        )
        download.direct_passthrough = False
        assert download.get_data() == b"hello"
        download.close()

        served = Response.file(path)
        assert served.mimetype == "text/plain"
        assert "attachment" not in served.headers.get("Content-Disposition", "")
        served.close()
        with pytest.raises(FileNotFoundError):
            Response.file(tmp_path / "missing.txt")

    def test_download_name_with_quote(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        download = Response.download(path, 'a".txt')
        disposition, options = parse_options_header(download.headers["Content-Disposition"])
        assert disposition == "attachment"
        assert options == {"filename": 'a".txt'}
        download.close()

    def test_download_through_client(self, app, tmp_path):
        path = tmp_path / "dm1.zip"
        path.write_bytes(b"PK")
        app.router.get("/get", lambda request: Response.download(path, request=request))
        response = app.test_client().get("/get")
        assert response.status_code == 200
        assert response.data == b"PK"
        assert response.mimetype == "application/octet-stream"

    def test_fluent_helpers(self):
        response = (
            Response("x")
            .with_headers({"X-A": "1"})
            .with_cookie("theme", "dark")
            .with_flash("success", "no session, no-op")
        )
        assert response.headers["X-A"] == "1"
        assert "theme=dark" in response.headers["Set-Cookie"]


# -------------------------------------------------------------------
# Helpers de templates
# -------------------------------------------------------------------
class TestHelpers:

    @pytest.fixture
    def ctx(self, app):
        with app.request_context(EnvironBuilder("/contact").get_environ()) as req:
            req.session = Session()
            yield req

    def test_format_date(self):
        assert helpers.format_date(date(2024, 3, 9)) == "09/03/2024"
        assert helpers.format_date("2024-03-09 14:30:00", "%H:%M") == "14:30"
        assert helpers.format_date(datetime(2024, 3, 9, 8, 5), "%Y") == "2024"
        assert helpers.format_date(None) == ""
        assert helpers.format_date("not a date") == "not a date"

    def test_url_without_context(self):
        assert helpers.url("devoirs") == "http://localhost/devoirs"
        assert helpers.asset("/css/app.css") == "http://localhost/css/app.css"

    def test_url_and_route_in_request(self, ctx):
        assert helpers.url("/about/") == "http://localhost/about"
        assert helpers.route("devoirs.show", id=2) == "/devoirs/2"
        assert helpers.config("app.security.csrf_token_name") == "_token"

    def test_csrf_helpers(self, ctx):
        field = helpers.csrf_field()
        token = helpers.csrf_token()
        assert isinstance(field, Markup)
        assert field == f'<input type="hidden" name="_token" value="{token}">'
        assert token in helpers.csrf_meta()

    def test_old_and_errors_peek(self, ctx):
        ctx.session.flash("_old_input", {"name": "Ada"})
        ctx.session.flash("errors", {"email": ["Email is required"]})
        assert helpers.old("name") == "Ada"
        assert helpers.old("email", "none") == "none"
        assert helpers.errors("email") == "Email is required"
        assert helpers.errors("name") is None
        assert helpers.errors() == {"email": ["Email is required"]}
        # toujours disponibles
        assert helpers.old("name") == "Ada"

    def test_flash_messages_consume(self, ctx):
        ctx.session.flash("success", "Saved")
        ctx.session.flash("custom", "kept")
        assert helpers.flash_messages() == {"success": "Saved"}
        assert helpers.flash_messages() == {}
        assert helpers.flash("custom") == "kept"
        assert helpers.flash("custom", "gone") == "gone"

    def test_escape_helpers(self):
        assert helpers.e("<x>") == "&lt;x&gt;"
        assert isinstance(helpers.escape_js("x"), Markup)
        assert helpers.escape_url("a b") == "a+b"

    def test_redirect_and_back(self, ctx):
        assert helpers.redirect("/x").headers["Location"] == "/x"
        assert helpers.back().headers["Location"] == "/"

    def test_shared_with_views(self, app):
        for name in ("e", "csrf_field", "old", "errors", "route", "format_date", "url"):
            assert name in app.view.shared
