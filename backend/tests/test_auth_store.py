from __future__ import annotations

import threading
import tempfile
from pathlib import Path

import unittest

from backend.pixeldetect.db.auth import SQLiteAuthStore


class TestSQLiteAuthStoreVerifyLoginCode(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.store = SQLiteAuthStore(Path(self._td.name) / "auth.sqlite3")

    def tearDown(self) -> None:
        self._td.cleanup()

    def test_verify_login_code_is_one_time_use_under_concurrency(self) -> None:
        email = "test@example.com"
        code = "123456"
        self.store.upsert_login_code(email, code, "deadbeef")

        barrier = threading.Barrier(2)
        lock = threading.Lock()
        results: list[bool] = []

        def worker() -> None:
            barrier.wait()
            ok = self.store.verify_login_code(email, code)
            with lock:
                results.append(ok)

        t1 = threading.Thread(target=worker)
        t2 = threading.Thread(target=worker)
        t1.start()
        t2.start()
        t1.join(timeout=5)
        t2.join(timeout=5)

        self.assertEqual(len(results), 2, f"Expected 2 results, got {results!r}")
        self.assertEqual(results.count(True), 1, f"Expected exactly one success, got {results!r}")

        # Subsequent attempts must fail (row already consumed).
        self.assertFalse(self.store.verify_login_code(email, code))

    def test_wrong_code_does_not_consume(self) -> None:
        self.store.upsert_login_code("a@example.com", "111111", "salt")
        self.assertFalse(self.store.verify_login_code("a@example.com", "222222"))
        self.assertTrue(self.store.verify_login_code("A@Example.com", "111111"))

    def test_get_or_create_user_is_keyed_by_email(self) -> None:
        first = self.store.get_or_create_user(user_id="u-1", email="Someone@Example.com")
        second = self.store.get_or_create_user(user_id="u-2", email="someone@example.com")
        self.assertEqual(first, "u-1")
        self.assertEqual(second, "u-1")
        other = self.store.get_or_create_user(user_id="u-3", email="other@example.com")
        self.assertEqual(other, "u-3")
