# ada/database.py
# Connexion SQLAlchemy (moteur unique, créé à la demande)
from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

_logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# URI
# -------------------------------------------------------------------
def normalize_database_url(uri: str) -> str:
    """Normalise une URI pour SQLAlchemy : psycopg3 pour Postgres, PyMySQL pour MySQL."""
    if not uri:
        return uri
    # Heroku/Render fournissent parfois 'postgres://'
    if uri.startswith("postgres://"):
        uri = "postgresql://" + uri[len("postgres://"):]
    if uri.startswith("postgresql+psycopg2://"):
        uri = "postgresql+psycopg://" + uri[len("postgresql+psycopg2://"):]
    elif uri.startswith("postgresql://"):
        uri = "postgresql+psycopg://" + uri[len("postgresql://"):]
    elif uri.startswith("mysql://"):
        uri = "mysql+pymysql://" + uri[len("mysql://"):]

    parsed = urlparse(uri)
    if parsed.scheme.startswith("mysql"):
        q = parse_qs(parsed.query)
        if "charset" not in q:
            q["charset"] = ["utf8mb4"]
            uri = urlunparse(parsed._replace(query=urlencode({k: v[0] for k, v in q.items()})))
    return uri


class Database:
    """Accès base : un moteur par application, transaction implicite par `connect()`."""

    def __init__(self, url: str, **engine_options):
        self.url = normalize_database_url(url)
        self.engine_options = engine_options
        self._engine = None

    @classmethod
    def from_config(cls, config) -> "Database":
        url = config.get("database.url")
        if not url:
            raise RuntimeError("Missing database.url (DATABASE_URL or DB_HOST)")
        return cls(url, **(config.get("database.engine_options") or {}))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def engine(self) -> sa.engine.Engine:
        if self._engine is None:
            options = dict(self.engine_options)
            if self.is_sqlite:
                # options de pool sans objet pour SQLite
                for key in ("pool_size", "max_overflow", "pool_recycle"):
                    options.pop(key, None)
                db_file = sa.engine.make_url(self.url).database
                if db_file and db_file != ":memory:":
                    Path(db_file).parent.mkdir(parents=True, exist_ok=True)
            else:
                options.setdefault("pool_pre_ping", True)
            try:
                self._engine = sa.create_engine(self.url, **options)
            except SQLAlchemyError as e:
                _logger.critical("Database connection failed: %s", e)
                raise
        return self._engine

    def connect(self):
        """Connexion dans une transaction (commit en sortie, rollback sur erreur)."""
        return self.engine.begin()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def __repr__(self):
        return f"<Database {sa.engine.make_url(self.url).render_as_string(hide_password=True)}>"
