from __future__ import annotations

import json
from pathlib import Path

from poggit.domain.models.resource import Resource
from poggit.infrastructure.db.sqlite import get_connection


class ResourceRepo:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path

    def insert(
        self,
        type: str,
        mime_type: str,
        access_filters: list[object],
        created_at: int,
        duration_seconds: int,
    ) -> int:
        with get_connection(self.db_path) as conn:
            cursor = conn.execute(
                """
                INSERT INTO resources (type, mime_type, access_filters, created, duration)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    type,
                    mime_type,
                    json.dumps(access_filters, separators=(",", ":")),
                    created_at,
                    duration_seconds,
                ),
            )
            conn.commit()
        return int(cursor.lastrowid)

    def get_by_id(self, resource_id: int) -> Resource | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM resources WHERE resource_id = ?",
                (resource_id,),
            ).fetchone()
        return self._to_model(row) if row else None

    def list(self, limit: int = 100) -> list[Resource]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT * FROM resources
                WHERE resource_id <> 1
                ORDER BY resource_id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [self._to_model(row) for row in rows]

    @staticmethod
    def _to_model(row) -> Resource:
        try:
            filters = json.loads(row["access_filters"] or "[]")
        except json.JSONDecodeError:
            filters = []
        return Resource(
            id=row["resource_id"],
            type=row["type"],
            mime_type=row["mime_type"],
            created_at=row["created"],
            duration_seconds=row["duration"],
            access_filters=filters if isinstance(filters, list) else [],
        )
