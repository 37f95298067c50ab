from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .models import STATUS_PENDING, STATUSES, AnalysisRecord


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteAnalysisStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=10)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init(self) -> None:
        statuses = ", ".join(f"'{s}'" for s in STATUSES)
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS image_analyses (
                  analysis_id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  image_url TEXT NOT NULL,
                  status TEXT NOT NULL CHECK (status IN ({statuses})),
                  created_at TEXT NOT NULL,
                  result_json TEXT,
                  error_message TEXT,
                  analyzed_at TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS by_user ON image_analyses(user_id, created_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS by_status ON image_analyses(status)")
            conn.commit()

    def create_analysis(self, analysis_id: str, user_id: str, image_url: str) -> AnalysisRecord:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO image_analyses(analysis_id, user_id, image_url, status, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (analysis_id, user_id, image_url, STATUS_PENDING, _now_iso()),
            )
            conn.commit()
        return self.get_analysis(analysis_id)

    def update_analysis(
        self,
        analysis_id: str,
        *,
        status: Optional[str] = None,
        result: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
        analyzed_at: Optional[str] = None,
        clear_result: bool = False,
        clear_error: bool = False,
        only_if_status: Optional[Iterable[str]] = None,
    ) -> Optional[AnalysisRecord]:
        """Patch one record.

        With `only_if_status` the patch is applied in a single conditional
        UPDATE and `None` is returned when the record is missing or its
        current status is not one of the given values.
        """
        updates: list[str] = []
        values: list[Any] = []

        if status is not None:
            updates.append("status = ?")
            values.append(status)
        if result is not None:
            updates.append("result_json = ?")
            values.append(json.dumps(result, ensure_ascii=False))
        elif clear_result:
            updates.append("result_json = NULL")
        if error_message is not None:
            updates.append("error_message = ?")
            values.append(error_message)
        elif clear_error:
            updates.append("error_message = NULL")
        if analyzed_at is not None:
            updates.append("analyzed_at = ?")
            values.append(analyzed_at)
        if not updates:
            raise ValueError("update_analysis called without any field to update")

        where = "analysis_id = ?"
        values.append(analysis_id)
        if only_if_status is not None:
            allowed = list(only_if_status)
            where += f" AND status IN ({', '.join('?' for _ in allowed)})"
            values.extend(allowed)

        with self._conn() as conn:
            cur = conn.execute(f"UPDATE image_analyses SET {', '.join(updates)} WHERE {where}", values)
            conn.commit()
            if cur.rowcount == 0:
                return None
        return self.get_analysis(analysis_id)

    def get_analysis(self, analysis_id: str) -> AnalysisRecord:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM image_analyses WHERE analysis_id = ?", (analysis_id,)).fetchone()
            if row is None:
                raise KeyError(f"Analysis not found: {analysis_id}")
            return AnalysisRecord(**dict(row))  # type: ignore[arg-type]

    def list_analyses_by_user(self, user_id: str) -> List[AnalysisRecord]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT * FROM image_analyses INDEXED BY by_user
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
            return [AnalysisRecord(**dict(r)) for r in rows]  # type: ignore[arg-type]

    def delete_analysis(self, analysis_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM image_analyses WHERE analysis_id = ?", (analysis_id,))
            conn.commit()
            return cur.rowcount > 0
