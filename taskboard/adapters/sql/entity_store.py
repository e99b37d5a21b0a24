from __future__ import annotations
import dataclasses
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

import sqlalchemy as db
from sqlalchemy.exc import IntegrityError, OperationalError

from taskboard.adapters.entity_meta import ID_ATTR, ORDER_ATTR, id_of
from taskboard.domain.enums import ChangeType, Collection, HistoryField, TaskPriority, TaskStatus, UserRole
from taskboard.domain.errors import EntityAlreadyExistsError, StoreUnavailableError
from taskboard.domain.history import HistoryEntry
from taskboard.domain.project import Project
from taskboard.domain.task import Task
from taskboard.domain.user import User
from taskboard.ports.entity_store import Predicate

logger = logging.getLogger(__name__)

_ENTITY_TYPES = {
    Collection.USERS: User,
    Collection.PROJECTS: Project,
    Collection.TASKS: Task,
    Collection.HISTORY: HistoryEntry,
}

_DATETIME_FIELDS = {
    Collection.USERS: {"created_at"},
    Collection.PROJECTS: {"created_at", "updated_at"},
    Collection.TASKS: {"due_date", "created_at", "updated_at"},
    Collection.HISTORY: {"change_date"},
}

_ENUM_FIELDS = {
    Collection.USERS: {"role": UserRole},
    Collection.PROJECTS: {},
    Collection.TASKS: {"status": TaskStatus, "priority": TaskPriority},
    Collection.HISTORY: {"change_type": ChangeType, "field_name": HistoryField},
}


def _encode_dt(dt: datetime) -> str:
    # fixed-width ISO 8601 UTC, so text order == time order
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _decode_dt(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00")).astimezone(timezone.utc)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return _encode_dt(value)
    if isinstance(value, Enum):
        return value.value
    return value


class SqlEntityStore:
    def __init__(self, url: str | Path) -> None:
        """
        url: e.g. 'sqlite:///data/taskboard.db', or a Path to a SQLite file (turned into a URL)
        """
        if isinstance(url, Path):
            db_url = f"sqlite:///{url}"
        else:
            db_url = url

        self.engine = db.create_engine(db_url, future=True)
        self.meta = db.MetaData()

        self.users = db.Table(
            "users",
            self.meta,
            db.Column("seq", db.Integer, primary_key=True, autoincrement=True),  # insertion order, breaks ties in listings
            db.Column("user_id", db.String, nullable=False, unique=True),
            db.Column("name", db.String, nullable=False),
            db.Column("email", db.String, nullable=False, unique=True),
            db.Column("role", db.String, nullable=False),          # 'User'/'Manager'
            db.Column("created_at", db.String, nullable=False),    # ISO8601 '...Z'
        )
        self.projects = db.Table(
            "projects",
            self.meta,
            db.Column("seq", db.Integer, primary_key=True, autoincrement=True),
            db.Column("project_id", db.String, nullable=False, unique=True),
            db.Column("name", db.String, nullable=False),
            db.Column("description", db.String, nullable=False),
            db.Column("owner_id", db.String, nullable=False, index=True),
            db.Column("created_at", db.String, nullable=False),
            db.Column("updated_at", db.String, nullable=False),
        )
        self.tasks = db.Table(
            "tasks",
            self.meta,
            db.Column("seq", db.Integer, primary_key=True, autoincrement=True),
            db.Column("task_id", db.String, nullable=False, unique=True),
            db.Column("project_id", db.String, nullable=False, index=True),
            db.Column("title", db.String, nullable=False),
            db.Column("description", db.String, nullable=True),
            db.Column("status", db.String, nullable=False),        # 'Pending'/'InProgress'/'Completed'
            db.Column("priority", db.String, nullable=False),      # 'Low'/'Medium'/'High'
            db.Column("due_date", db.String, nullable=False),
            db.Column("created_at", db.String, nullable=False),
            db.Column("updated_at", db.String, nullable=False),
        )
        self.history = db.Table(
            "task_history",
            self.meta,
            db.Column("seq", db.Integer, primary_key=True, autoincrement=True),
            db.Column("history_id", db.String, nullable=False, unique=True),
            db.Column("task_id", db.String, nullable=False, index=True),
            db.Column("user_id", db.String, nullable=False),
            db.Column("change_type", db.String, nullable=False),   # 'Create'/'Update'/'Comment'
            db.Column("field_name", db.String, nullable=True),
            db.Column("old_value", db.String, nullable=True),
            db.Column("new_value", db.String, nullable=True),
            db.Column("comment", db.String, nullable=True),
            db.Column("change_date", db.String, nullable=False),
        )
        self._tables = {
            Collection.USERS: self.users,
            Collection.PROJECTS: self.projects,
            Collection.TASKS: self.tasks,
            Collection.HISTORY: self.history,
        }

        # create tables if missing
        with self._guard():
            self.meta.create_all(self.engine)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Maps driver failures onto StoreUnavailableError."""
        try:
            yield
        except (OperationalError, OSError) as e:
            logger.error("Store unavailable: %s", e)
            raise StoreUnavailableError(str(e)) from e

    def _to_row(self, collection: Collection, entity: Any) -> dict:
        return {f.name: _encode_value(getattr(entity, f.name)) for f in dataclasses.fields(entity)}

    def _from_row(self, collection: Collection, row: Mapping[str, Any]) -> Any:
        dt_fields = _DATETIME_FIELDS[collection]
        enum_fields = _ENUM_FIELDS[collection]
        values = {}
        for f in dataclasses.fields(_ENTITY_TYPES[collection]):
            raw = row[f.name]
            if raw is not None and f.name in dt_fields:
                raw = _decode_dt(raw)
            elif raw is not None and f.name in enum_fields:
                raw = enum_fields[f.name](raw)
            values[f.name] = raw
        return _ENTITY_TYPES[collection](**values)

    def _filter(self, stmt, collection: Collection, predicate: Predicate | None):
        table = self._tables[collection]
        clauses = []
        for field, expected in (predicate or {}).items():
            column = table.c[field]
            if isinstance(expected, (list, tuple, set, frozenset)):
                clauses.append(column.in_([_encode_value(v) for v in expected]))
            elif expected is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == _encode_value(expected))
        return stmt.where(*clauses) if clauses else stmt

    def _id_column(self, collection: Collection):
        return self._tables[collection].c[ID_ATTR[collection]]

    def find_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        stmt = db.select(self._tables[collection]).where(self._id_column(collection) == str(entity_id))
        with self._guard(), self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
            return None if row is None else self._from_row(collection, row)

    def find_where(self, collection: Collection, predicate: Predicate | None = None) -> list[Any]:
        table = self._tables[collection]
        # stable order: ASC + tie-breaker on insertion order
        stmt = (
            self._filter(db.select(table), collection, predicate)
            .order_by(table.c[ORDER_ATTR[collection]].asc(), table.c.seq.asc())
        )
        with self._guard(), self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
            return [self._from_row(collection, r) for r in rows]

    def insert(self, collection: Collection, entity: Any) -> Any:
        stmt = db.insert(self._tables[collection]).values(**self._to_row(collection, entity))
        try:
            with self._guard(), self.engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError:
            # PK or UNIQUE conflict
            raise EntityAlreadyExistsError(str(collection), id_of(collection, entity))
        return entity

    def update_by_id(self, collection: Collection, entity_id: str, changes: Mapping[str, Any]) -> Optional[Any]:
        table = self._tables[collection]
        id_col = self._id_column(collection)
        values = {k: _encode_value(v) for k, v in changes.items()}
        try:
            with self._guard(), self.engine.begin() as conn:
                if values:
                    result = conn.execute(db.update(table).where(id_col == str(entity_id)).values(**values))
                    if result.rowcount == 0:
                        return None
                row = conn.execute(db.select(table).where(id_col == str(entity_id))).mappings().first()
                return None if row is None else self._from_row(collection, row)
        except IntegrityError:
            raise EntityAlreadyExistsError(str(collection), str(entity_id))

    def delete_by_id(self, collection: Collection, entity_id: str) -> Optional[Any]:
        table = self._tables[collection]
        id_col = self._id_column(collection)
        with self._guard(), self.engine.begin() as conn:
            row = conn.execute(db.select(table).where(id_col == str(entity_id))).mappings().first()
            if row is None:
                return None
            conn.execute(db.delete(table).where(id_col == str(entity_id)))
            return self._from_row(collection, row)

    def delete_many(self, collection: Collection, predicate: Predicate) -> int:
        stmt = self._filter(db.delete(self._tables[collection]), collection, predicate)
        with self._guard(), self.engine.begin() as conn:
            return int(conn.execute(stmt).rowcount)

    def count_where(self, collection: Collection, predicate: Predicate | None = None) -> int:
        stmt = self._filter(
            db.select(db.func.count()).select_from(self._tables[collection]), collection, predicate
        )
        with self._guard(), self.engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())
