# ada/middleware.py
# Couche middleware et construction du pipeline
from __future__ import annotations

import abc
import functools

from werkzeug.utils import import_string

from .exceptions import RoutingError


class Middleware(abc.ABC):
    """
    Un middleware reçoit la requête et `next`, l'appel vers la suite du
    pipeline. Il peut court-circuiter en renvoyant sa propre réponse.
    """

    @abc.abstractmethod
    def handle(self, request, next):
        raise NotImplementedError

    def __call__(self, request, next):
        return self.handle(request, next)


def resolve_middleware(entry, aliases: dict | None = None):
    """
    Transforme une entrée de configuration en objet appelable
    `(request, next) -> réponse`. Accepte : alias, chaîne d'import,
    classe (instanciée à chaque requête), instance ou simple fonction.
    """
    if isinstance(entry, str):
        target = (aliases or {}).get(entry, entry)
        if isinstance(target, str):
            try:
                target = import_string(target)
            except ImportError as e:
                raise RoutingError(f"Middleware not found: {entry}") from e
        entry = target

    if isinstance(entry, type):
        entry = entry()

    if isinstance(entry, Middleware):
        return entry.handle
    if callable(entry):
        return entry
    raise RoutingError(f"Invalid middleware: {entry!r}")


def build_pipeline(middleware, destination, aliases: dict | None = None, on_error=None):
    """
    Enveloppe `destination(request)` dans la liste de middlewares ;
    le premier de la liste s'exécute en premier.

    Si `on_error` est fourni, une exception levée plus bas dans la chaîne
    est convertie en réponse avant de remonter : chaque middleware reçoit
    toujours une réponse de `next`.
    """
    handlers = [resolve_middleware(m, aliases) for m in middleware]

    def guard(step):
        if on_error is None:
            return step

        def guarded(request):
            try:
                return step(request)
            except Exception as e:
                return on_error(e)
        return guarded

    def wrap(next_, handler):
        next_ = guard(next_)
        return lambda request: handler(request, next_)

    return functools.reduce(wrap, reversed(handlers), destination)
