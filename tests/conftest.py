from __future__ import annotations

import re

import pytest

from app import create_app
from init_db import init_database

_token_re = re.compile(r'name="_token" value="([0-9a-f]{64})"')


@pytest.fixture
def app(tmp_path):
    """Application isolée : base SQLite, sessions, cache et journal temporaires."""
    app = create_app({
        "app.debug": False,
        "app.log.path": str(tmp_path / "logs" / "app.log"),
        "app.log.stderr": False,
        "app.session.path": str(tmp_path / "sessions"),
        "app.views.cache_path": str(tmp_path / "cache"),
        "database.url": f"sqlite:///{tmp_path / 'test.sqlite3'}",
    })
    with app.app_context():
        init_database(app, echo=lambda *a: None)
    yield app
    app.database.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def csrf_token():
    """Extrait le jeton CSRF du formulaire d'une page rendue."""

    def extract(html: str) -> str:
        m = _token_re.search(html)
        assert m, "no CSRF field in page"
        return m.group(1)

    return extract
