# tests/test_api.py

"""Tests for the REST API."""

import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from api.app import app
from emailprotections.errors import InvalidDomainError, RecordParseError, TransportError


def _fake_check(domain, resolver, timeout):
    if domain == "invalid!":
        raise InvalidDomainError(domain)
    if domain == "down.example.com":
        raise TransportError(domain, resolver, "timed out")
    if domain == "broken.example.com":
        raise RecordParseError(domain, "pct", "x")
    result = MagicMock()
    result.to_dict.return_value = {
        "DOMAIN": domain,
        "DNS_RESOLVER": resolver,
        "SPOOFING_POSSIBLE": False,
    }
    return result


@patch("api.app.check_domain", side_effect=_fake_check)
class TestApi(unittest.TestCase):
    """Tests for the API endpoints."""

    def setUp(self):
        self.client = TestClient(app)

    def test_health(self, mock_check):
        self.assertEqual(self.client.get("/api/health").json(), {"status": "ok"})

    def test_resolvers(self, mock_check):
        body = self.client.get("/api/resolvers").json()
        self.assertEqual(body["default"], "1.1.1.1:53")
        self.assertIn("quad9", body["resolvers"])

    def test_check_single(self, mock_check):
        resp = self.client.get("/api/check/Example.COM")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["result"]["DOMAIN"], "example.com")
        self.assertEqual(body["result"]["DNS_RESOLVER"], "1.1.1.1:53")

    def test_check_single_named_resolver(self, mock_check):
        body = self.client.get("/api/check/example.com", params={"resolver": "google"}).json()
        self.assertEqual(body["result"]["DNS_RESOLVER"], "8.8.8.8:53")

    def test_check_single_bad_resolver(self, mock_check):
        resp = self.client.get("/api/check/example.com", params={"resolver": "not-an-ip"})
        self.assertEqual(resp.status_code, 400)
        mock_check.assert_not_called()

    def test_check_single_invalid_domain(self, mock_check):
        resp = self.client.get("/api/check/invalid!")
        self.assertEqual(resp.status_code, 400)

    def test_check_single_transport_error(self, mock_check):
        resp = self.client.get("/api/check/down.example.com")
        self.assertEqual(resp.status_code, 502)

    def test_check_single_parse_error(self, mock_check):
        body = self.client.get("/api/check/broken.example.com").json()
        self.assertEqual(body["status"], "error")

    def test_check_bulk(self, mock_check):
        resp = self.client.post("/api/check", json={
            "domains": ["example.com", " ", "down.example.com", "example.org"],
        })
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["count"], 2)
        self.assertEqual(body["errors"][0]["domain"], "down.example.com")

    def test_check_bulk_empty(self, mock_check):
        body = self.client.post("/api/check", json={"domains": []}).json()
        self.assertEqual(body["status"], "error")

    def test_check_bulk_too_many(self, mock_check):
        domains = [f"d{i}.example.com" for i in range(51)]
        body = self.client.post("/api/check", json={"domains": domains}).json()
        self.assertEqual(body["status"], "error")
        mock_check.assert_not_called()


if __name__ == "__main__":
    unittest.main()
