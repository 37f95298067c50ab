from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

from ..core.config import settings
from ..core.security import code_matches, hash_code


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteAuthStore:
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
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                  user_id TEXT PRIMARY KEY,
                  email TEXT UNIQUE NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS login_codes (
                  email TEXT PRIMARY KEY,
                  code_hash TEXT NOT NULL,
                  salt TEXT NOT NULL,
                  expires_at TEXT NOT NULL,
                  created_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get_or_create_user(self, *, user_id: str, email: str) -> str:
        with self._conn() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO users(user_id, email, created_at) VALUES (?, ?, ?)",
                (user_id, email.lower(), _now_iso()),
            )
            conn.commit()
            row = conn.execute("SELECT user_id FROM users WHERE email = ?", (email.lower(),)).fetchone()
            return str(row["user_id"])

    def upsert_login_code(self, email: str, code: str, salt: str) -> None:
        now = _now_iso()
        expires = (datetime.now(timezone.utc) + timedelta(seconds=settings.login_code_ttl_seconds)).isoformat()
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO login_codes(email, code_hash, salt, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(email) DO UPDATE SET code_hash=excluded.code_hash, salt=excluded.salt,
                  expires_at=excluded.expires_at, created_at=excluded.created_at
                """,
                (email.lower(), hash_code(email, code, salt), salt, expires, now),
            )
            conn.commit()

    def verify_login_code(self, email: str, code: str) -> bool:
        """Check a login code and consume it; a code verifies at most once."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT code_hash, salt, expires_at FROM login_codes WHERE email = ?",
                (email.lower(),),
            ).fetchone()
            if row is None:
                return False
            expected = str(row["code_hash"])
            if not code_matches(email, code, str(row["salt"]), expected):
                return False
            # Concurrent verifiers race on this DELETE; only one sees a row.
            cur = conn.execute(
                "DELETE FROM login_codes WHERE email = ? AND code_hash = ?",
                (email.lower(), expected),
            )
            conn.commit()
            if cur.rowcount != 1:
                return False
            expires_at = datetime.fromisoformat(str(row["expires_at"]))
            return expires_at >= datetime.now(timezone.utc)
