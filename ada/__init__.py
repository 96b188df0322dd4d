# ada/__init__.py
# Mini-framework MVC : routage, middlewares, templates compilés, modèles, validation.
from .app import Application
from .controller import Controller
from .exceptions import (
    AdaError,
    RouteNotFound,
    RoutingError,
    TemplateError,
    TemplateNotFound,
    TemplateSyntaxError,
    ValidationException,
)
from .globals import current_app, request, session
from .middleware import Middleware
from .model import Model
from .validation import Validator
from .wrappers import Request, Response

__version__ = "1.0.0"

__all__ = [
    "AdaError",
    "Application",
    "Controller",
    "Middleware",
    "Model",
    "Request",
    "Response",
    "RouteNotFound",
    "RoutingError",
    "TemplateError",
    "TemplateNotFound",
    "TemplateSyntaxError",
    "ValidationException",
    "Validator",
    "current_app",
    "request",
    "session",
]
