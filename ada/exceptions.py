# ada/exceptions.py
# Erreurs propres au framework
from __future__ import annotations


class AdaError(Exception):
    """Base de toutes les erreurs ADA."""


# -------------------------------------------------------------------
# Templates
# -------------------------------------------------------------------
class TemplateError(AdaError):
    pass


class TemplateNotFound(TemplateError):
    def __init__(self, template: str):
        super().__init__(f"Template not found: {template}")
        self.template = template


class TemplateSyntaxError(TemplateError):
    def __init__(self, message: str, template: str | None = None, lineno: int | None = None):
        where = ""
        if template:
            where = f" ({template}"
            where += f", line {lineno})" if lineno else ")"
        super().__init__(f"{message}{where}")
        self.message = message
        self.template = template
        self.lineno = lineno


# -------------------------------------------------------------------
# Routage
# -------------------------------------------------------------------
class RoutingError(AdaError):
    """Action introuvable ou valeur de retour inexploitable."""


class RouteNotFound(RoutingError):
    """Génération d'URL impossible (nom inconnu, paramètre manquant)."""


# -------------------------------------------------------------------
# Validation
# -------------------------------------------------------------------
class ValidationException(AdaError):
    """Transporte la réponse à renvoyer quand la validation échoue."""

    def __init__(self, response, message: str = "Validation failed"):
        super().__init__(message)
        self.response = response

    def get_response(self):
        return self.response
