"""Database-backed state persistence.

Handles SQLite (default) and any other SQLAlchemy backend. Uses
SQLAlchemy Core (not ORM) with one row per (namespace, key); insertion
order is kept in an explicit position column.
"""

import json
from datetime import UTC, datetime
from typing import Any, Self

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    select,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

state_entries_table = Table(
    "state_entries",
    metadata,
    Column("namespace", String(128), primary_key=True),
    Column("key", String(512), primary_key=True),
    Column("position", Integer, nullable=False),
    Column("value_json", Text, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

state_namespaces_table = Table(
    "state_namespaces",
    metadata,
    Column("namespace", String(128), primary_key=True),
    Column("schema_version", Integer),
)


class DatabaseStateBackend:
    """State backend storing entries in a relational database."""

    def __init__(self, engine: Engine) -> None:
        """Initialize backend on an existing engine and create tables."""
        self._engine = engine
        metadata.create_all(self._engine)

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """Enable WAL journaling on every SQLite connection."""

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(
            dbapi_connection: object, connection_record: object
        ) -> None:
            cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    @classmethod
    def from_url(cls, url: str) -> Self:
        """Create backend from a SQLAlchemy connection URL.

        Args:
            url: e.g. "sqlite:///./.keyward/state.db"
        """
        engine = create_engine(url, echo=False)
        if url.startswith("sqlite") and ":memory:" not in url:
            cls._configure_sqlite(engine)
        return cls(engine)

    @classmethod
    def in_memory(cls) -> Self:
        """Create an in-memory SQLite backend for testing."""
        return cls(create_engine("sqlite:///:memory:", echo=False))

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine."""
        return self._engine

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()

    def load(self, namespace: str) -> tuple[dict[str, Any], int | None]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(state_entries_table.c.key, state_entries_table.c.value_json)
                .where(state_entries_table.c.namespace == namespace)
                .order_by(state_entries_table.c.position)
            ).all()
            version = conn.execute(
                select(state_namespaces_table.c.schema_version).where(
                    state_namespaces_table.c.namespace == namespace
                )
            ).scalar_one_or_none()
        return {row.key: json.loads(row.value_json) for row in rows}, version

    def save(
        self,
        namespace: str,
        data: dict[str, Any],
        schema_version: int | None,
    ) -> None:
        now = datetime.now(UTC)
        # Single transaction: readers see either the old or the new namespace
        with self._engine.begin() as conn:
            conn.execute(
                delete(state_entries_table).where(
                    state_entries_table.c.namespace == namespace
                )
            )
            if data:
                conn.execute(
                    state_entries_table.insert(),
                    [
                        {
                            "namespace": namespace,
                            "key": key,
                            "position": position,
                            "value_json": json.dumps(value),
                            "updated_at": now,
                        }
                        for position, (key, value) in enumerate(data.items())
                    ],
                )
            conn.execute(
                delete(state_namespaces_table).where(
                    state_namespaces_table.c.namespace == namespace
                )
            )
            conn.execute(
                state_namespaces_table.insert().values(
                    namespace=namespace, schema_version=schema_version
                )
            )

    def namespaces(self) -> list[str]:
        with self._engine.connect() as conn:
            return list(
                conn.execute(
                    select(state_namespaces_table.c.namespace).order_by(
                        state_namespaces_table.c.namespace
                    )
                ).scalars()
            )
