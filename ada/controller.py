# ada/controller.py
# Contrôleur de base
from __future__ import annotations

from werkzeug.exceptions import abort

from .exceptions import ValidationException
from .globals import current_app
from .validation import Validator
from .wrappers import Response


class Controller:
    """
    Base des contrôleurs : une instance par requête, les actions reçoivent
    `(request, **paramètres_de_route)`.
    """

    @property
    def app(self):
        return current_app._get_current_object()

    @property
    def logger(self):
        return current_app.logger

    def view(self, template: str, data: dict | None = None, status: int = 200) -> Response:
        return Response.view(template, data, status)

    def redirect(self, url: str, status: int = 302) -> Response:
        return Response.redirect(url, status)

    def json(self, data, status: int = 200) -> Response:
        return Response.json(data, status)

    def back(self, request, fallback: str = "/") -> Response:
        return Response.back(request, fallback)

    def validate(self, request, rules: dict, messages: dict | None = None,
                 data: dict | None = None, redirect_to: str | None = None) -> dict:
        """
        Valide la saisie (par défaut `request.all()`). En cas d'échec, retour
        à la page précédente (ou `redirect_to`) avec les erreurs et
        l'ancienne saisie en flash.
        """
        if data is None:
            data = request.all()
        validator = Validator.make(data, rules, messages)
        if not validator.validate():
            # le jeton CSRF et les champs internes ne sont pas renvoyés
            old_input = {k: v for k, v in data.items() if not k.startswith("_")}
            if redirect_to is not None:
                response = Response.redirect(redirect_to)
            else:
                response = Response.back(request)
            response = response.with_errors(validator.errors()).with_input(old_input)
            raise ValidationException(response)
        return validator.validated()

    def abort(self, code: int, description: str | None = None):
        abort(code, description=description)

    def error404(self, message: str = "Page not found"):
        self.abort(404, message)

    def error500(self, message: str = "Internal server error"):
        self.abort(500, message)
