# routes.py
# Table des routes : (méthode, uri, action[, nom[, middlewares]]).
# Ordre significatif : la première route qui correspond gagne.
from __future__ import annotations

import middleware

# middlewares exécutés sur toutes les requêtes, dans cet ordre
MIDDLEWARE = ["session", "csrf"]

CONTROLLERS = {
    "HomeController": "home_pages.HomeController",
    "DevoirController": "devoir_portal.DevoirController",
}

ROUTES = [
    # Accueil
    ("GET", "/", "HomeController@index", "home"),
    ("GET", "/about", "HomeController@about", "about"),
    ("GET", "/contact", "HomeController@contact", "contact"),
    ("POST", "/contact", "HomeController@submit_contact", "contact.submit"),

    # Devoirs (consultation)
    ("GET", "/devoirs", "DevoirController@index", "devoirs.index"),
    ("GET", "/devoirs/upcoming", "DevoirController@upcoming", "devoirs.upcoming"),
    ("GET", "/devoirs/{id}", "DevoirController@show", "devoirs.show"),
]

API_ROUTES = [
    ("GET", "/devoirs", "DevoirController@api_index", "api.devoirs"),
]


def register_routes(app) -> None:
    router = app.router
    router.middleware_aliases.update(middleware.ALIASES)
    router.controllers.update(CONTROLLERS)
    router.set_global_middleware(MIDDLEWARE)

    router.load(ROUTES)
    with router.group("/api"):
        router.load(API_ROUTES)
