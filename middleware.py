# middleware.py
# Middlewares de l'application : session, CSRF, authentification.
from __future__ import annotations

import time

from werkzeug.exceptions import Forbidden

from ada import Middleware, Response, current_app
from ada.security import validate_csrf_token

# renouvellement périodique de l'identifiant de session
REGENERATE_EVERY = 1800


class SessionMiddleware(Middleware):
    """
    Ouvre la session depuis le cookie, applique l'expiration sur inactivité,
    fait vieillir le flash puis enregistre la session et pose le cookie.
    """

    def handle(self, request, next):
        app = current_app
        cfg = app.config.get("app.session", {}) or {}
        store = app.session_store
        cookie_name = cfg.get("cookie_name", "ada_session")

        sid = request.cookies.get(cookie_name)
        session = store.get(sid) if sid else store.new()

        now = int(time.time())
        lifetime = int(cfg.get("lifetime", 1800))
        last_activity = session.get("_last_activity")
        if last_activity is not None and now - int(last_activity) > lifetime:
            app.logger.info("Session expirée après %ss d'inactivité", now - int(last_activity))
            store.delete(session)
            session = store.new()

        if not session.is_new and now - int(session.get("_last_regeneration", 0)) > REGENERATE_EVERY:
            session.regenerate()
        if session.is_new or session.should_rotate:
            session["_last_regeneration"] = now
        session["_last_activity"] = now

        session.age_flash()
        request.session = session

        response = next(request)
        self.persist(session, response, cfg)
        return response

    def persist(self, session, response, cfg) -> None:
        store = current_app.session_store
        cookie_name = cfg.get("cookie_name", "ada_session")
        path = cfg.get("cookie_path", "/")
        domain = cfg.get("cookie_domain") or None

        if session.should_destroy:
            store.delete(session)
            response.delete_cookie(cookie_name, path=path, domain=domain)
            return

        if session.should_rotate:
            store.rotate(session)
        elif session.is_dirty or session.is_new:
            store.save(session)

        response.set_cookie(
            cookie_name,
            session.sid,
            path=path,
            domain=domain,
            secure=bool(cfg.get("cookie_secure", False)),
            httponly=bool(cfg.get("cookie_httponly", True)),
            samesite=cfg.get("cookie_samesite", "Lax"),
        )


class CsrfMiddleware(Middleware):
    """Les requêtes qui modifient l'état doivent porter un jeton CSRF valide."""

    methods = ("POST", "PUT", "PATCH", "DELETE")

    def handle(self, request, next):
        if request.method in self.methods:
            name = current_app.config.get("app.security.csrf_token_name", "_csrf_token")
            token = request.form.get(name) or request.headers.get("X-CSRF-TOKEN", "")
            if not validate_csrf_token(token):
                current_app.logger.warning(
                    "CSRF token mismatch: %s %s (%s)", request.method, request.path, request.ip()
                )
                raise Forbidden(
                    "CSRF token validation failed. This request has been blocked for security reasons."
                )
        return next(request)


class AuthMiddleware(Middleware):
    """Réservé aux utilisateurs connectés (user_id en session)."""

    login_url = "/login"

    def handle(self, request, next):
        if request.session is None or not request.session.has("user_id"):
            return Response.redirect(self.login_url).with_flash(
                "error", "Please log in to access this page."
            )
        return next(request)


ALIASES = {
    "session": SessionMiddleware,
    "csrf": CsrfMiddleware,
    "auth": AuthMiddleware,
}
