# error_pages.py
# Pages d'erreur 403 / 404 / 500.
from __future__ import annotations

import traceback

from ada import Controller, current_app, request
from ada.globals import has_request_context


class ErrorController(Controller):

    def error403(self, e):
        return self.view("errors.403", {
            "title": "403 Forbidden",
            "code": "403",
            "heading": "Access Denied",
            "message": "You do not have permission to access this resource.",
            "details": getattr(e, "description", "") or "",
            "suggestion": "Please log in or contact an administrator if you believe this is an error.",
        }, status=403)

    def error404(self, e):
        uri = request.path if has_request_context() else ""
        return self.view("errors.404", {
            "title": "404 Not Found",
            "code": "404",
            "heading": "Page Not Found",
            "message": "The page you are looking for could not be found.",
            "details": f"Requested URI: {uri}" if uri else "",
            "suggestion": "Please check the URL or return to the homepage.",
        }, status=404)

    def error500(self, e):
        data = {
            "title": "500 Internal Server Error",
            "code": "500",
            "heading": "Internal Server Error",
            "message": "Something went wrong on our end. We are working to fix it.",
            "details": "",
            "trace": "",
            "suggestion": "Please try again later or contact support if the problem persists.",
        }
        original = getattr(e, "original_exception", None)
        if current_app.debug and original is not None:
            data["details"] = str(original)
            data["trace"] = "".join(
                traceback.format_exception(type(original), original, original.__traceback__)
            )
        return self.view("errors.500", data, status=500)


def register_error_pages(app) -> None:
    errors = ErrorController()
    app.errorhandler(403)(errors.error403)
    app.errorhandler(404)(errors.error404)
    app.errorhandler(500)(errors.error500)
