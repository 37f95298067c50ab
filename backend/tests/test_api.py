from __future__ import annotations

import time
import unittest
from typing import Dict
from unittest import mock

from fastapi.testclient import TestClient

from backend.pixeldetect.main import app
from backend.pixeldetect.services.analyzers import AnalysisResult, Analyzer


class StaticAnalyzer(Analyzer):
    def __init__(self, result: AnalysisResult):
        self.result = result

    def analyze(self, image_url: str) -> AnalysisResult:
        return self.result


def _login(client: TestClient, email: str) -> Dict[str, str]:
    sent: Dict[str, str] = {}
    with mock.patch("backend.pixeldetect.api.auth.send_login_code", side_effect=lambda e, c: sent.update(code=c)):
        r = client.post("/auth/request_code", json={"email": email})
    assert r.status_code == 200, r.text
    r = client.post("/auth/verify_code", json={"email": email, "code": sent["code"]})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def _wait_terminal(client: TestClient, analysis_id: str, headers: Dict[str, str]) -> dict:
    deadline = time.monotonic() + 10
    while True:
        body = client.get(f"/analyses/{analysis_id}", headers=headers).json()
        if body["status"] in ("complete", "error") or time.monotonic() > deadline:
            return body
        time.sleep(0.05)


class TestAuthApi(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_health(self) -> None:
        r = self.client.get("/healthz")
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()["ok"])

    def test_me_requires_auth(self) -> None:
        self.assertEqual(self.client.get("/auth/me").status_code, 401)
        bad = {"Authorization": "Bearer not-a-jwt"}
        self.assertEqual(self.client.get("/auth/me", headers=bad).status_code, 401)

    def test_login_flow(self) -> None:
        headers = _login(self.client, "Login@Example.com")
        r = self.client.get("/auth/me", headers=headers)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["email"], "login@example.com")

    def test_wrong_code(self) -> None:
        with mock.patch("backend.pixeldetect.api.auth.send_login_code"), mock.patch(
            "backend.pixeldetect.api.auth.generate_login_code", return_value="123456"
        ):
            self.client.post("/auth/request_code", json={"email": "wrong@example.com"})
        r = self.client.post("/auth/verify_code", json={"email": "wrong@example.com", "code": "654321"})
        self.assertEqual(r.status_code, 401)
        r = self.client.post("/auth/verify_code", json={"email": "wrong@example.com", "code": "abcdef"})
        self.assertEqual(r.status_code, 422)
        r = self.client.post("/auth/verify_code", json={"email": "wrong@example.com", "code": "123456"})
        self.assertEqual(r.status_code, 200)


class TestAnalysesApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.client = TestClient(app)
        cls.alice = _login(cls.client, "alice@example.com")
        cls.bob = _login(cls.client, "bob@example.com")

    def _submit(self, headers: Dict[str, str], url: str = "https://pbs.twimg.com/media/abc.jpg") -> dict:
        r = self.client.post("/analyses", json={"image_url": url}, headers=headers)
        self.assertEqual(r.status_code, 201, r.text)
        return r.json()

    def test_end_to_end(self) -> None:
        created = self._submit(self.alice)
        self.assertEqual(created["status"], "pending")
        self.assertIsNone(created["result"])
        self.assertIsNone(created["error_message"])

        listed = self.client.get("/analyses", headers=self.alice).json()
        self.assertIn(created["analysis_id"], [a["analysis_id"] for a in listed])

        r = self.client.post(f"/analyses/{created['analysis_id']}/analyze", headers=self.alice)
        self.assertEqual(r.status_code, 202)
        self.assertEqual(r.json(), {"ok": True, "analysis_id": created["analysis_id"]})

        final = _wait_terminal(self.client, created["analysis_id"], self.alice)
        self.assertIn(final["status"], ("complete", "error"))
        if final["status"] == "complete":
            self.assertGreaterEqual(final["result"]["confidence"], 65)
            self.assertLessEqual(final["result"]["confidence"], 95)
            self.assertTrue(final["result"]["flags"])
            self.assertIsNone(final["error_message"])
            self.assertIsNotNone(final["analyzed_at"])
        else:
            self.assertIsNone(final["result"])
            self.assertTrue(final["error_message"])

    def test_complete_analysis_carries_label(self) -> None:
        fixed = AnalysisResult(True, False, True, 88, "report", ["PHOTOSHOPPED", "CLONE_STAMP_DETECTED"])
        created = self._submit(self.alice)
        self.assertIsNone(created["label"])
        with mock.patch("backend.pixeldetect.api.analyses.analyzer", StaticAnalyzer(fixed)):
            self.client.post(f"/analyses/{created['analysis_id']}/analyze", headers=self.alice)
            final = _wait_terminal(self.client, created["analysis_id"], self.alice)
        self.assertEqual(final["status"], "complete")
        self.assertEqual(final["label"], "Photoshopped")
        self.assertEqual(final["result"]["confidence"], 88)

    def test_out_of_range_confidence_keeps_list_readable(self) -> None:
        bad = AnalysisResult(True, False, False, 150, "report", [])
        created = self._submit(self.alice)
        with mock.patch("backend.pixeldetect.api.analyses.analyzer", StaticAnalyzer(bad)):
            self.client.post(f"/analyses/{created['analysis_id']}/analyze", headers=self.alice)
            final = _wait_terminal(self.client, created["analysis_id"], self.alice)
        self.assertEqual(final["status"], "error")
        self.assertIsNone(final["label"])
        r = self.client.get("/analyses", headers=self.alice)
        self.assertEqual(r.status_code, 200)
        self.assertIn(created["analysis_id"], [a["analysis_id"] for a in r.json()])

    def test_submit_requires_auth(self) -> None:
        r = self.client.post("/analyses", json={"image_url": "https://example.com/a.jpg"})
        self.assertEqual(r.status_code, 401)

    def test_submit_invalid_url(self) -> None:
        before = len(self.client.get("/analyses", headers=self.alice).json())
        r = self.client.post("/analyses", json={"image_url": "not a url"}, headers=self.alice)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["detail"], "Invalid URL format")
        self.assertEqual(len(self.client.get("/analyses", headers=self.alice).json()), before)

    def test_list_is_newest_first(self) -> None:
        first = self._submit(self.alice, "https://example.com/1.jpg")
        second = self._submit(self.alice, "https://example.com/2.jpg")
        ids = [a["analysis_id"] for a in self.client.get("/analyses", headers=self.alice).json()]
        self.assertLess(ids.index(second["analysis_id"]), ids.index(first["analysis_id"]))

    def test_unauthenticated_reads(self) -> None:
        created = self._submit(self.alice)
        self.assertEqual(self.client.get("/analyses").json(), [])
        self.assertEqual(self.client.get("/analyses", headers={"Authorization": "Bearer junk"}).json(), [])
        self.assertEqual(self.client.get(f"/analyses/{created['analysis_id']}").status_code, 404)
        self.assertEqual(self.client.post(f"/analyses/{created['analysis_id']}/analyze").status_code, 404)
        self.assertEqual(self.client.delete(f"/analyses/{created['analysis_id']}").status_code, 401)

    def test_other_owner_is_isolated(self) -> None:
        created = self._submit(self.alice)
        aid = created["analysis_id"]

        self.assertEqual(self.client.get(f"/analyses/{aid}", headers=self.bob).status_code, 404)
        self.assertNotIn(aid, [a["analysis_id"] for a in self.client.get("/analyses", headers=self.bob).json()])
        self.assertEqual(self.client.post(f"/analyses/{aid}/analyze", headers=self.bob).status_code, 404)
        self.assertEqual(self.client.delete(f"/analyses/{aid}", headers=self.bob).status_code, 404)

        r = self.client.get(f"/analyses/{aid}", headers=self.alice)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "pending")

    def test_remove(self) -> None:
        created = self._submit(self.alice)
        aid = created["analysis_id"]
        r = self.client.delete(f"/analyses/{aid}", headers=self.alice)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"ok": True})
        self.assertEqual(self.client.get(f"/analyses/{aid}", headers=self.alice).status_code, 404)
        self.assertEqual(self.client.delete(f"/analyses/{aid}", headers=self.alice).status_code, 404)
