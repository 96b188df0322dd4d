# app.py
# Portail de devoirs sur ADA : construction de l'application.
from __future__ import annotations

from pathlib import Path

from ada import Application
from error_pages import register_error_pages
from routes import register_routes

# -------------------------------------------------------------------
# Constantes / Dossiers
# -------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent


def create_app(overrides: dict | None = None) -> Application:
    """
    `overrides` : clés de configuration pointées, appliquées après les
    fichiers config/*.py (ex. {"database.url": "sqlite://"}).
    """
    app = Application(BASE_DIR, overrides)

    register_routes(app)
    register_error_pages(app)

    app.view.share("app_name", app.config.get("app.name", "ADA Framework"))

    app.logger.debug(
        "Application ready (env=%s, %d routes)",
        app.config.get("app.env"), len(app.router.routes),
    )
    return app
