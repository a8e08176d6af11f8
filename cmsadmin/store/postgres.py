"""
Postgres document store.

Every table lives in one `documents` table as JSONB bodies, with one partial
expression index per declared index. All access goes through the pool
passed in; call connect() to build one with the JSON codecs installed.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

import asyncpg

from cmsadmin.schema import SCHEMA
from cmsadmin.store.base import Document, DocumentStore, Order


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(value: Any) -> str:
    return json.dumps(value, default=_encode)


async def _init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    Sets up JSON codecs so bodies arrive as dicts.
    """
    await conn.set_type_codec(
        "jsonb",
        encoder=_dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "json",
        encoder=_dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


def _as_text(value: Any) -> str:
    """Render a value the way `body->>'field'` does."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class PostgresDocumentStore(DocumentStore):
    """
    Postgres-based document store.

    Write notifications are in-process only: live queries re-run for writes
    made through this store instance.
    """

    def __init__(self, pool: asyncpg.Pool):
        super().__init__()
        self.pool = pool

    @classmethod
    async def connect(cls, dsn: str) -> PostgresDocumentStore:
        """Create a pool and ensure the documents table and indexes exist."""
        if not dsn:
            raise RuntimeError("DATABASE_URL environment variable is required for the Postgres document store")
        pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=1,
            max_size=10,
            command_timeout=60,
            init=_init_connection,
        )
        store = cls(pool)
        await store.ensure_schema()
        return store

    async def ensure_schema(self) -> None:
        """Create the documents table and one expression index per declared index."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    tbl TEXT NOT NULL,
                    seq BIGSERIAL,
                    body JSONB NOT NULL
                )
                """
            )
            await conn.execute("CREATE INDEX IF NOT EXISTS documents_tbl_seq ON documents (tbl, seq)")
            for table, indexes in SCHEMA.items():
                for index, fields in indexes.items():
                    columns = ", ".join(f"(body->>'{f}')" for f in fields)
                    # Names come from SCHEMA constants, never from callers.
                    await conn.execute(
                        f"CREATE INDEX IF NOT EXISTS documents_{table}_{index} "
                        f"ON documents ({columns}) WHERE tbl = '{table}'"  # nosec B608
                    )

    async def insert(self, table: str, doc: Document) -> str:
        if table not in SCHEMA:
            raise KeyError(f"Unknown table {table!r}")
        doc_id = uuid4().hex
        body = {k: v for k, v in doc.items() if v is not None and k != "id"}
        async with self.pool.acquire() as conn:
            await conn.execute(
                "INSERT INTO documents (id, tbl, body) VALUES ($1, $2, $3)",
                doc_id,
                table,
                body,
            )
        self._notify(table)
        return doc_id

    async def get(self, doc_id: str, table: str | None = None) -> Document | None:
        async with self.pool.acquire() as conn:
            if table is None:
                row = await conn.fetchrow("SELECT id, body FROM documents WHERE id = $1", doc_id)
            else:
                row = await conn.fetchrow(
                    "SELECT id, body FROM documents WHERE id = $1 AND tbl = $2",
                    doc_id,
                    table,
                )
            return _row_to_document(row) if row else None

    async def patch(self, doc_id: str, changes: Document) -> None:
        merge = {k: v for k, v in changes.items() if v is not None and k != "id"}
        remove = [k for k, v in changes.items() if v is None and k != "id"]
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE documents
                SET body = (body || $2::jsonb) - $3::text[]
                WHERE id = $1
                RETURNING tbl
                """,
                doc_id,
                merge,
                remove,
            )
        if row is None:
            raise KeyError(doc_id)
        self._notify(row["tbl"])

    async def delete(self, doc_id: str) -> None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("DELETE FROM documents WHERE id = $1 RETURNING tbl", doc_id)
        if row is not None:
            self._notify(row["tbl"])

    async def fetch(self, table: str, eq: Document, order: Order) -> list[Document]:
        clauses = ["tbl = $1"]
        values: list[Any] = [table]
        for field in eq:
            # Field names are validated against SCHEMA by Query.with_index().
            if field not in {f for fields in SCHEMA[table].values() for f in fields}:
                raise ValueError(f"Field {field!r} is not indexed on {table!r}")
            value = eq[field]
            if value is None:
                clauses.append(f"NOT (body ? '{field}')")
            else:
                values.append(_as_text(value))
                clauses.append(f"body->>'{field}' = ${len(values)}")
        direction = "DESC" if order == "desc" else "ASC"
        sql = f"SELECT id, body FROM documents WHERE {' AND '.join(clauses)} ORDER BY seq {direction}"  # nosec B608
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(sql, *values)
            return [_row_to_document(row) for row in rows]

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()


def _row_to_document(row: asyncpg.Record) -> Document:
    """Convert a database row to a document dict."""
    doc = dict(row["body"])
    doc["id"] = row["id"]
    return doc
