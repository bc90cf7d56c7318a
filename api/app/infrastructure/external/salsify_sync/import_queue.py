"""
Cola de importacion diferida sobre Postgres (psycopg).

Cada producto se encola como item independiente. Los workers reclaman items
con FOR UPDATE SKIP LOCKED, por lo que varios workers pueden correr en
paralelo; la entrega puede duplicarse o reordenarse y la idempotencia por
registro del importador es lo que mantiene la consistencia.
"""

from __future__ import annotations

from typing import Any, Optional

import psycopg
from psycopg.types.json import Jsonb

from app.domain.repositories.import_queue import IImportQueue, QueueItem

from .pg_repository import PostgresConnectionFactory

STATUS_QUEUED = "queued"
STATUS_RUNNING = "running"
STATUS_DONE = "done"
STATUS_FAILED = "failed"


class PostgresImportQueue(IImportQueue):
    def __init__(
        self,
        connections: PostgresConnectionFactory,
        *,
        queue_name: str,
        table: str = "salsify_import_queue",
    ) -> None:
        self._connections = connections
        self._queue_name = queue_name
        self._table = table
        self._table_ready = False

    def connect(self) -> psycopg.Connection:
        return self._connections.connect()

    def ensure_table(self, conn: psycopg.Connection) -> None:
        if self._table_ready:
            return
        with conn.cursor() as cur:
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS "{self._table}" (
                    id          BIGSERIAL   PRIMARY KEY,
                    queue_name  TEXT        NOT NULL,
                    payload     JSONB       NOT NULL,
                    status      TEXT        NOT NULL DEFAULT '{STATUS_QUEUED}',
                    attempts    INTEGER     NOT NULL DEFAULT 0,
                    last_error  TEXT        NULL,
                    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
                    claimed_at  TIMESTAMPTZ NULL,
                    finished_at TIMESTAMPTZ NULL
                );
                """
            )
            cur.execute(
                f"""
                CREATE INDEX IF NOT EXISTS "ix_{self._table}_queue_status"
                ON "{self._table}" (queue_name, status, id);
                """
            )
        self._table_ready = True

    def create_item(self, payload: dict[str, Any]) -> int:
        with self.connect() as conn:
            self.ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO "{self._table}" (queue_name, payload)
                    VALUES (%s, %s)
                    RETURNING id
                    """,
                    (self._queue_name, Jsonb(payload)),
                )
                row = cur.fetchone()
        return int(row["id"])

    def claim_next(self) -> Optional[QueueItem]:
        """
        Reclama atomicamente el item mas antiguo en estado queued.
        """
        with self.connect() as conn:
            self.ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE "{self._table}"
                    SET status = %s, claimed_at = now(), attempts = attempts + 1
                    WHERE id = (
                        SELECT id FROM "{self._table}"
                        WHERE queue_name = %s AND status = %s
                        ORDER BY id
                        FOR UPDATE SKIP LOCKED
                        LIMIT 1
                    )
                    RETURNING id, payload, attempts
                    """,
                    (STATUS_RUNNING, self._queue_name, STATUS_QUEUED),
                )
                row = cur.fetchone()

        if not row:
            return None
        return QueueItem(item_id=int(row["id"]), payload=row["payload"], attempts=int(row["attempts"]))

    def mark_done(self, item_id: int) -> None:
        self._finish(item_id, STATUS_DONE, None)

    def mark_failed(self, item_id: int, error: str) -> None:
        self._finish(item_id, STATUS_FAILED, error[:2000])

    def _finish(self, item_id: int, status: str, error: Optional[str]) -> None:
        with self.connect() as conn:
            self.ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE "{self._table}"
                    SET status = %s, last_error = %s, finished_at = now()
                    WHERE id = %s
                    """,
                    (status, error, item_id),
                )

    def count_pending(self) -> int:
        with self.connect() as conn:
            self.ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT count(*) AS pending FROM "{self._table}"
                    WHERE queue_name = %s AND status = %s
                    """,
                    (self._queue_name, STATUS_QUEUED),
                )
                row = cur.fetchone()
        return int(row["pending"]) if row else 0
