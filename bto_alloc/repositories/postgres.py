"""PostgreSQL repository: one JSONB document table per collection."""

import json
import logging
from typing import Any

from bto_alloc.exceptions import RepositoryError
from bto_alloc.repositories.base import COLLECTIONS, SnapshotRepository
from bto_alloc.repositories.serialization import DECODERS, ID_FIELDS, to_dict

logger = logging.getLogger(__name__)

TABLE_PREFIX = "bto_"

DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    data JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

UPSERT = """
INSERT INTO {table} (id, position, data, updated_at)
VALUES (%s, %s, %s::jsonb, now())
ON CONFLICT (id) DO UPDATE
SET position = EXCLUDED.position, data = EXCLUDED.data, updated_at = now()
"""


class PostgresRepository(SnapshotRepository):
    """Persist collections to PostgreSQL with psycopg.

    Saves upsert the whole snapshot and delete rows that left it, in one
    transaction. ``position`` keeps insertion order for FIFO queries.
    """

    def __init__(self, conninfo: str, create_schema: bool = True) -> None:
        import psycopg

        self._psycopg = psycopg
        try:
            self.conn = psycopg.connect(conninfo)
        except psycopg.Error as e:
            raise RepositoryError(f"Cannot connect to PostgreSQL: {e}") from e
        if create_schema:
            self.ensure_schema()

    @staticmethod
    def table_for(collection: str) -> str:
        return f"{TABLE_PREFIX}{collection}"

    def ensure_schema(self) -> None:
        """Create the collection tables if they do not exist."""
        try:
            with self.conn.cursor() as cur:
                for collection in COLLECTIONS:
                    cur.execute(DDL.format(table=self.table_for(collection)))
            self.conn.commit()
        except self._psycopg.Error as e:
            self.conn.rollback()
            raise RepositoryError(f"Cannot create schema: {e}") from e
        logger.info("PostgreSQL schema ready (%d tables)", len(COLLECTIONS))

    def _read(self, collection: str) -> list:
        table = self.table_for(collection)
        try:
            with self.conn.cursor() as cur:
                cur.execute(f"SELECT data FROM {table} ORDER BY position")  # noqa: S608
                rows = cur.fetchall()
        except self._psycopg.Error as e:
            raise RepositoryError(f"Cannot read {table}: {e}") from e

        decode = DECODERS[collection]
        return [decode(self._document(row[0])) for row in rows]

    def _write(self, collection: str, records: list) -> None:
        table = self.table_for(collection)
        id_field = ID_FIELDS[collection]
        rows = []
        for position, record in enumerate(records):
            data = to_dict(record)
            rows.append((data[id_field], position, json.dumps(data, ensure_ascii=False, default=str)))

        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    f"DELETE FROM {table} WHERE NOT (id = ANY(%s))",  # noqa: S608
                    ([row[0] for row in rows],),
                )
                if rows:
                    cur.executemany(UPSERT.format(table=table), rows)
            self.conn.commit()
        except self._psycopg.Error as e:
            self.conn.rollback()
            raise RepositoryError(f"Cannot write {table}: {e}") from e

        logger.debug("Upserted %d rows into %s", len(rows), table)

    @staticmethod
    def _document(value: Any) -> dict:
        return json.loads(value) if isinstance(value, (str, bytes)) else value

    def close(self) -> None:
        self.conn.close()
