from __future__ import annotations

import pytest
import werkzeug.utils
from werkzeug.exceptions import NotFound
from werkzeug.test import EnvironBuilder

from ada import Middleware, Request, Response
from ada.exceptions import RouteNotFound, RoutingError
from ada.middleware import build_pipeline, resolve_middleware
from ada.routing import Route, Router, compile_pattern, normalize_uri


def make_request(path="/", method="GET", **kwargs):
    return Request(EnvironBuilder(path=path, method=method, **kwargs).get_environ())


class Greeter:
    """Contrôleur minimal pour les actions « Classe@méthode »."""

    def hello(self, request, name="world"):
        return f"hello {name}"


class Tagger(Middleware):
    def __init__(self, calls=None, tag="t"):
        self.calls = calls if calls is not None else []
        self.tag = tag

    def handle(self, request, next):
        self.calls.append(self.tag)
        return next(request)


# -------------------------------------------------------------------
# Motifs et correspondance
# -------------------------------------------------------------------
class TestMatching:

    def test_normalize_uri(self):
        assert normalize_uri("/a/b/?q=1") == "/a/b"
        assert normalize_uri("") == "/"
        assert normalize_uri("//") == "/"
        assert normalize_uri("devoirs") == "/devoirs"

    def test_placeholders_and_literal_parts(self):
        pattern = compile_pattern("/files/{name}.txt")
        assert pattern.match("/files/readme.txt").group("name") == "readme"
        assert pattern.match("/files/readmeXtxt") is None
        assert pattern.match("/files/a/b.txt") is None

    def test_method_matching(self):
        route = Route("GET", "/", lambda r: "x")
        assert route.match("GET", "/") == {}
        assert route.match("HEAD", "/") == {}
        assert route.match("POST", "/") is None
        assert Route("ANY", "/", lambda r: "x").match("DELETE", "/") == {}

    def test_first_registered_route_wins(self):
        router = Router()
        router.get("/devoirs/upcoming", lambda r: "upcoming", name="upcoming")
        router.get("/devoirs/{id}", lambda r, id: id, name="show")
        route, params = router.match("GET", "/devoirs/upcoming")
        assert route.name == "upcoming"
        route, params = router.match("GET", "/devoirs/12/")
        assert route.name == "show"
        assert params == {"id": "12"}

    def test_no_match(self):
        router = Router()
        router.post("/contact", lambda r: "sent")
        assert router.match("GET", "/contact") == (None, None)


# -------------------------------------------------------------------
# Enregistrement
# -------------------------------------------------------------------
class TestRegistration:

    def test_decorator_form(self):
        router = Router()

        @router.get("/hello", name="hello")
        def hello(request):
            return "hi"

        assert hello(None) == "hi"
        assert router.named["hello"].action is hello

    def test_groups_nest_prefix_and_middleware(self):
        router = Router()
        with router.group("/api", middleware=["outer"]):
            with router.group("v1", ["inner"]):
                route = router.get("/items", lambda r: [], middleware=["own"])
            other = router.get("status", lambda r: {})
        assert route.uri == "/api/v1/items"
        assert route.middleware == ["outer", "inner", "own"]
        assert other.uri == "/api/status"
        assert other.middleware == ["outer"]

    def test_load_table(self):
        router = Router()
        router.load([
            ("GET", "/", "Greeter@hello", "home"),
            ("POST", "/send", "Greeter@hello", "send", ["csrf"]),
            ("PUT", "/raw", "Greeter@hello"),
        ], middleware=["session"])
        assert [r.method for r in router.routes] == ["GET", "POST", "PUT"]
        assert router.named["send"].middleware == ["session", "csrf"]
        assert router.routes[2].name is None
        assert router.has_route("home")

    def test_set_global_middleware(self):
        router = Router()
        router.set_global_middleware(("session", "csrf"))
        assert router.global_middleware == ["session", "csrf"]


# -------------------------------------------------------------------
# Actions et dispatch
# -------------------------------------------------------------------
class TestDispatch:

    def test_callable_action_receives_params(self):
        router = Router()
        seen = {}

        def show(request, id):
            seen["param"] = request.route_param("id")
            return f"devoir {id}"

        router.get("/devoirs/{id}", show)
        response = router.dispatch(make_request("/devoirs/7"))
        assert response.status_code == 200
        assert response.content == "devoir 7"
        assert seen["param"] == "7"

    def test_controller_string_action(self):
        router = Router()
        router.controllers["Greeter"] = Greeter
        router.get("/hello/{name}", "Greeter@hello")
        assert router.dispatch(make_request("/hello/ada")).content == "hello ada"

    def test_controller_import_string(self):
        router = Router()
        router.get("/hello", f"{__name__}.Greeter@hello")
        assert router.dispatch(make_request("/hello")).content == "hello world"

    def test_unresolvable_actions(self):
        router = Router()
        router.controllers["Greeter"] = Greeter
        with pytest.raises(RoutingError):
            router.check_action("Greeter@missing")
        with pytest.raises(RoutingError):
            router.check_action("NoSuchController@index")
        with pytest.raises(RoutingError):
            router.check_action("no-at-sign")
        router.check_action("Greeter@hello")
        router.check_action(lambda r: "ok")

    def test_not_found_without_handler(self):
        router = Router()
        with pytest.raises(NotFound):
            router.dispatch(make_request("/nowhere"))

    def test_not_found_runs_global_middleware(self):
        calls = []
        router = Router()
        router.set_global_middleware([Tagger(calls, "global")])
        router.exception_handler = lambda e: Response("missing", status=e.code)
        response = router.dispatch(make_request("/nowhere"))
        assert response.status_code == 404
        assert calls == ["global"]

    def test_global_then_route_middleware(self):
        calls = []
        router = Router()
        router.middleware_aliases["second"] = Tagger(calls, "route")
        router.set_global_middleware([Tagger(calls, "global")])
        router.get("/", lambda r: "ok", middleware=["second"])
        assert router.dispatch(make_request("/")).content == "ok"
        assert calls == ["global", "route"]


class TestPrepareResponse:

    def test_response_passthrough(self):
        response = Response("x")
        assert Router.prepare_response(response) is response

    def test_string_and_tuples(self):
        assert Router.prepare_response("<p>hi</p>").mimetype == "text/html"
        created = Router.prepare_response(("made", 201))
        assert created.status_code == 201
        tagged = Router.prepare_response(("ok", 202, {"X-Tag": "1"}))
        assert tagged.status_code == 202
        assert tagged.headers["X-Tag"] == "1"

    def test_json_payloads(self):
        response = Router.prepare_response({"count": 2})
        assert response.mimetype == "application/json"
        assert response.get_json() == {"count": 2}
        assert Router.prepare_response([1, 2]).get_json() == [1, 2]

    def test_plain_werkzeug_response(self):
        response = Router.prepare_response(werkzeug.utils.redirect("/elsewhere"))
        assert isinstance(response, Response)
        assert response.status_code == 302

    def test_invalid_values(self):
        with pytest.raises(RoutingError):
            Router.prepare_response(None)
        with pytest.raises(RoutingError):
            Router.prepare_response(42)
        with pytest.raises(RoutingError):
            Router.prepare_response(("a", 200, {}, "extra"))


# -------------------------------------------------------------------
# Génération d'URL
# -------------------------------------------------------------------
class TestUrlFor:

    @pytest.fixture
    def router(self):
        router = Router()
        router.get("/", lambda r: "", name="home")
        router.get("/devoirs/{id}", lambda r, id: id, name="devoirs.show")
        return router

    def test_substitution(self, router):
        assert router.url_for("home") == "/"
        assert router.url_for("devoirs.show", id=3) == "/devoirs/3"
        assert router.url_for("devoirs.show", id="a b") == "/devoirs/a%20b"

    def test_extra_params_become_query_string(self, router):
        assert router.url_for("devoirs.show", id=3, page=2) == "/devoirs/3?page=2"

    def test_errors(self, router):
        with pytest.raises(RouteNotFound):
            router.url_for("unknown")
        with pytest.raises(RouteNotFound):
            router.url_for("devoirs.show")


# -------------------------------------------------------------------
# Pipeline de middlewares
# -------------------------------------------------------------------
class TestPipeline:

    @staticmethod
    def tracer(calls, tag):
        def handler(request, next):
            calls.append(f"{tag}>")
            response = next(request)
            calls.append(f"<{tag}")
            return response
        return handler

    def test_first_middleware_runs_first(self):
        calls = []

        def destination(request):
            calls.append("action")
            return "done"

        pipeline = build_pipeline([self.tracer(calls, "a"), self.tracer(calls, "b")], destination)
        assert pipeline(make_request()) == "done"
        assert calls == ["a>", "b>", "action", "<b", "<a"]

    def test_short_circuit(self):
        def blocker(request, next):
            return "blocked"

        def destination(request):
            raise AssertionError("must not run")

        assert build_pipeline([blocker], destination)(make_request()) == "blocked"

    def test_errors_become_responses_inside_chain(self):
        seen = []

        def outer(request, next):
            response = next(request)
            seen.append(response)
            return response

        def destination(request):
            raise ValueError("boom")

        pipeline = build_pipeline([outer], destination, on_error=lambda e: f"handled {e}")
        assert pipeline(make_request()) == "handled boom"
        assert seen == ["handled boom"]

    def test_resolve_middleware_entries(self):
        aliases = {"tag": Tagger, "path": f"{__name__}.Tagger"}
        instance = Tagger()
        assert resolve_middleware("tag", aliases).__self__.__class__ is Tagger
        assert resolve_middleware("path", aliases).__self__.__class__ is Tagger
        assert resolve_middleware(instance) == instance.handle

        def plain(request, next):
            return next(request)

        assert resolve_middleware(plain) is plain

    def test_resolve_middleware_errors(self):
        with pytest.raises(RoutingError):
            resolve_middleware("does.not.Exist")
        with pytest.raises(RoutingError):
            resolve_middleware(42)
