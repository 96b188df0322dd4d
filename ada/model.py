# ada/model.py
# Modèle de base (CRUD) et constructeur de requêtes
from __future__ import annotations

import logging
import re
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from .globals import current_app

_logger = logging.getLogger(__name__)

_ident_re = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

OPERATORS = ("=", "!=", "<>", "<", ">", "<=", ">=", "LIKE", "NOT LIKE")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _ident_re.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _rows(result) -> list[dict]:
    return [dict(row._mapping) for row in result]


class Model:
    """
    Modèle de base. Les enregistrements sont des dicts ; les erreurs SQL sont
    journalisées et converties en valeur « vide » ([], None, False, 0).
    """

    table: str = ""
    primary_key: str = "id"
    fillable: list[str] = []
    timestamps: bool = False

    def __init__(self, database=None):
        self._database = database

    @property
    def database(self):
        if self._database is None:
            self._database = current_app.database
        return self._database

    # -------------------------------------------------------------------
    # Constructions SQLAlchemy
    # -------------------------------------------------------------------
    def _table(self, *columns):
        return sa.table(check_identifier(self.table), *[sa.column(check_identifier(c)) for c in columns])

    def _select_all(self):
        return sa.select(sa.text("*")).select_from(self._table())

    def _col(self, name: str):
        return sa.column(check_identifier(name))

    def _fetch_all(self, stmt, label="Query") -> list[dict]:
        try:
            with self.database.connect() as conn:
                return _rows(conn.execute(stmt))
        except SQLAlchemyError as e:
            _logger.error("%s error: %s | SQL: %s", label, e, stmt)
            return []

    def _fetch_one(self, stmt, label="Query") -> dict | None:
        rows = self._fetch_all(stmt, label)
        return rows[0] if rows else None

    def filter_fillable(self, data: dict) -> dict:
        if not self.fillable:
            return dict(data)
        return {k: v for k, v in data.items() if k in self.fillable}

    # -------------------------------------------------------------------
    # Lecture
    # -------------------------------------------------------------------
    def all(self) -> list[dict]:
        return self._fetch_all(self._select_all())

    def find(self, id) -> dict | None:
        stmt = self._select_all().where(self._col(self.primary_key) == id).limit(1)
        return self._fetch_one(stmt)

    def first(self) -> dict | None:
        return self._fetch_one(self._select_all().limit(1))

    def where(self, field: str, value) -> list[dict]:
        return self._fetch_all(self._select_all().where(self._col(field) == value))

    def find_by(self, field: str, value) -> dict | None:
        stmt = self._select_all().where(self._col(field) == value).limit(1)
        return self._fetch_one(stmt)

    def count(self) -> int:
        stmt = sa.select(sa.func.count()).select_from(self._table())
        try:
            with self.database.connect() as conn:
                return int(conn.execute(stmt).scalar() or 0)
        except SQLAlchemyError as e:
            _logger.error("Count error: %s", e)
            return 0

    def exists(self, id) -> bool:
        return self.find(id) is not None

    # -------------------------------------------------------------------
    # Écriture
    # -------------------------------------------------------------------
    def create(self, data: dict):
        """Insère un enregistrement ; renvoie son identifiant, ou False."""
        data = self.filter_fillable(data)
        if not data:
            _logger.error("Create failed: no fillable fields provided (%s)", self.table)
            return False

        if self.timestamps:
            now = datetime.now().strftime(TIMESTAMP_FORMAT)
            data["created_at"] = now
            data["updated_at"] = now

        table = self._table(*dict.fromkeys([*data.keys(), self.primary_key]))
        stmt = sa.insert(table).values(**data)
        try:
            with self.database.connect() as conn:
                if conn.dialect.insert_returning:
                    result = conn.execute(stmt.returning(table.c[self.primary_key]))
                    return result.scalar_one()
                result = conn.execute(stmt)
                return result.lastrowid or False
        except SQLAlchemyError as e:
            _logger.error("Create error (%s): %s", self.table, e)
            return False

    def update(self, id, data: dict) -> int:
        """Met à jour par clé primaire ; renvoie le nombre de lignes modifiées."""
        data = self.filter_fillable(data)
        if not data:
            _logger.error("Update failed: no fillable fields provided (%s)", self.table)
            return 0

        if self.timestamps:
            data["updated_at"] = datetime.now().strftime(TIMESTAMP_FORMAT)

        stmt = (
            sa.update(self._table(*data.keys()))
            .where(self._col(self.primary_key) == id)
            .values(**data)
        )
        try:
            with self.database.connect() as conn:
                return conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            _logger.error("Update error (%s): %s", self.table, e)
            return 0

    def delete(self, id) -> bool:
        stmt = sa.delete(self._table()).where(self._col(self.primary_key) == id)
        try:
            with self.database.connect() as conn:
                return conn.execute(stmt).rowcount > 0
        except SQLAlchemyError as e:
            _logger.error("Delete error (%s): %s", self.table, e)
            return False

    # -------------------------------------------------------------------
    # SQL brut (paramètres nommés :nom)
    # -------------------------------------------------------------------
    def query(self, sql: str, params: dict | None = None) -> list[dict]:
        try:
            with self.database.connect() as conn:
                return _rows(conn.execute(sa.text(sql), params or {}))
        except SQLAlchemyError as e:
            _logger.error("Query error: %s | SQL: %s", e, sql)
            return []

    def query_one(self, sql: str, params: dict | None = None) -> dict | None:
        rows = self.query(sql, params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: dict | None = None) -> bool:
        try:
            with self.database.connect() as conn:
                conn.execute(sa.text(sql), params or {})
            return True
        except SQLAlchemyError as e:
            _logger.error("Execute error: %s | SQL: %s", e, sql)
            return False

    # -------------------------------------------------------------------
    # Constructeur de requêtes (un nouvel objet par chaîne)
    # -------------------------------------------------------------------
    def new_query(self) -> "QueryBuilder":
        return QueryBuilder(self)

    def select(self, columns) -> "QueryBuilder":
        return self.new_query().select(columns)

    def where_condition(self, field: str, operator: str, value) -> "QueryBuilder":
        return self.new_query().where_condition(field, operator, value)

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        return self.new_query().order_by(column, direction)

    def limit(self, limit: int) -> "QueryBuilder":
        return self.new_query().limit(limit)

    def offset(self, offset: int) -> "QueryBuilder":
        return self.new_query().offset(offset)


class QueryBuilder:
    def __init__(self, model: Model):
        self.model = model
        self._columns: list[str] = []
        self._wheres: list[tuple[str, str, object]] = []
        self._orders: list[tuple[str, str]] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def select(self, columns) -> "QueryBuilder":
        if isinstance(columns, str):
            columns = [c.strip() for c in columns.split(",")]
        cols = [c for c in columns if c and c != "*"]
        self._columns = [check_identifier(c) for c in cols]
        return self

    def where(self, field: str, value) -> "QueryBuilder":
        return self.where_condition(field, "=", value)

    def where_condition(self, field: str, operator: str, value) -> "QueryBuilder":
        op = " ".join(str(operator).upper().split())
        if op not in OPERATORS:
            raise ValueError(f"Invalid operator: {operator!r}")
        self._wheres.append((check_identifier(field), op, value))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        direction = str(direction).upper()
        if direction not in ("ASC", "DESC"):
            direction = "ASC"
        self._orders.append((check_identifier(column), direction))
        return self

    def limit(self, limit: int) -> "QueryBuilder":
        self._limit = int(limit)
        return self

    def offset(self, offset: int) -> "QueryBuilder":
        self._offset = int(offset)
        return self

    def _apply_filters(self, stmt):
        for field, op, value in self._wheres:
            col = sa.column(field)
            stmt = stmt.where(col == value if op == "=" else col.op(op)(value))
        return stmt

    def to_statement(self):
        table = self.model._table()
        if self._columns:
            stmt = sa.select(*[sa.column(c) for c in self._columns]).select_from(table)
        else:
            stmt = sa.select(sa.text("*")).select_from(table)
        stmt = self._apply_filters(stmt)
        for column, direction in self._orders:
            col = sa.column(column)
            stmt = stmt.order_by(col.desc() if direction == "DESC" else col.asc())
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset is not None:
            stmt = stmt.offset(self._offset)
        return stmt

    def get(self) -> list[dict]:
        return self.model._fetch_all(self.to_statement())

    def first(self) -> dict | None:
        self._limit = 1
        rows = self.get()
        return rows[0] if rows else None

    def count(self) -> int:
        stmt = self._apply_filters(sa.select(sa.func.count()).select_from(self.model._table()))
        try:
            with self.model.database.connect() as conn:
                return int(conn.execute(stmt).scalar() or 0)
        except SQLAlchemyError as e:
            _logger.error("Count error: %s", e)
            return 0
