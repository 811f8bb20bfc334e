# tests/test_spoofing.py

"""Tests for the combined spoofing verdict."""

import unittest
from unittest.mock import patch

from emailprotections.domain import validate_domain
from emailprotections.errors import InvalidDomainError
from emailprotections.spoofing import check_domain


class TestCheckDomain(unittest.TestCase):
    """Tests for check_domain with both evaluators backed by a dict."""

    def _check(self, records, domain="example.com"):
        def fetch(owner, marker, resolver=None, timeout=None):
            validate_domain(owner)
            return records.get(owner)

        with patch("emailprotections.spf.fetch_record", side_effect=fetch), \
                patch("emailprotections.dmarc.fetch_record", side_effect=fetch):
            return check_domain(domain, "8.8.8.8:53")

    def test_strong_domain_not_spoofable(self):
        report = self._check({
            "example.com": "v=spf1 include:_spf.example.com -all",
            "_dmarc.example.com": "v=DMARC1; p=reject; rua=mailto:d@example.com",
        })
        self.assertTrue(report.spf_strong)
        self.assertTrue(report.dmarc_strong)
        self.assertFalse(report.spoofing_possible)
        self.assertEqual(report.findings[-1].level, "good")

    def test_no_records_spoofable(self):
        report = self._check({})
        self.assertFalse(report.spf_strong)
        self.assertFalse(report.dmarc_strong)
        self.assertTrue(report.spoofing_possible)
        self.assertIn("Spoofing possible", report.findings[-1].message)

    def test_weak_dmarc_spoofable_despite_strong_spf(self):
        report = self._check({
            "example.com": "v=spf1 -all",
            "_dmarc.example.com": "v=DMARC1; p=none",
        })
        self.assertTrue(report.spf_strong)
        self.assertTrue(report.spoofing_possible)

    def test_to_dict(self):
        report = self._check({
            "example.com": "v=spf1 mx ~all",
            "_dmarc.example.com": "v=DMARC1; p=quarantine; pct=50",
        })
        d = report.to_dict()
        self.assertEqual(d["DOMAIN"], "example.com")
        self.assertEqual(d["DNS_RESOLVER"], "8.8.8.8:53")
        self.assertEqual(d["SPF"], "v=spf1 mx ~all")
        self.assertEqual(d["SPF_ALL"], "~all")
        self.assertEqual(d["SPF_MECHANISMS"], ["mx", "~all"])
        self.assertEqual(d["DMARC_POLICY"], "quarantine")
        self.assertEqual(d["DMARC_PCT"], 50)
        self.assertEqual(d["DMARC_DOMAIN"], "example.com")
        self.assertFalse(d["SPOOFING_POSSIBLE"])
        self.assertTrue(all({"level", "message"} == set(f) for f in d["FINDINGS"]))

    def test_to_dict_without_records(self):
        d = self._check({}).to_dict()
        self.assertIsNone(d["SPF"])
        self.assertIsNone(d["DMARC"])
        self.assertIsNone(d["DMARC_DOMAIN"])
        self.assertTrue(d["SPOOFING_POSSIBLE"])

    def test_domain_stripped(self):
        report = self._check({"_dmarc.example.com": "v=DMARC1; p=reject"}, "  example.com  ")
        self.assertEqual(report.domain, "example.com")
        self.assertFalse(report.spoofing_possible)

    @patch("emailprotections.resolver.dns.query.udp_with_fallback")
    def test_invalid_domain_issues_no_query(self, mock_exchange):
        for bad in ["", "   ", "exa mple.com", "bad!chars.com"]:
            with self.assertRaises(InvalidDomainError):
                check_domain(bad)
        mock_exchange.assert_not_called()


if __name__ == "__main__":
    unittest.main()
