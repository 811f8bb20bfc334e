# emailprotections/dmarc.py

"""
DMARC record parsing and policy-strength evaluation.

A domain without its own record falls back to the record of its
organizational domain. When that parent record publishes ``sp=``, the
subdomain policy decides instead of ``p=``.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .domain import is_strict_subdomain, organizational_domain, validate_domain
from .errors import RecordParseError
from .findings import BAD, GOOD, INDIFFERENT, INFO, WARNING, FindingCollector
from .resolver import DEFAULT_RESOLVER, DEFAULT_TIMEOUT, DMARC_MARKER, fetch_record

logger = logging.getLogger("spoofcheck.dmarc")

STRONG_POLICIES = ("quarantine", "reject")


@dataclass(frozen=True)
class DmarcRecord:
    """A parsed DMARC record. ``raw_text == ""`` means no record was published."""

    domain: str
    raw_text: str = ""
    version: str = ""
    policy: str = ""
    subdomain_policy: str = ""
    percent: Optional[int] = None
    report_uri: str = ""
    forensic_uri: str = ""
    dkim_alignment: str = ""
    spf_alignment: str = ""
    report_interval: str = ""
    failure_options: str = ""

    @property
    def present(self):
        return self.raw_text != ""

    def to_dict(self):
        return {
            "domain": self.domain,
            "record": self.raw_text or None,
            "version": self.version or None,
            "p": self.policy or None,
            "sp": self.subdomain_policy or None,
            "pct": self.percent,
            "rua": self.report_uri or None,
            "ruf": self.forensic_uri or None,
            "adkim": self.dkim_alignment or None,
            "aspf": self.spf_alignment or None,
            "ri": self.report_interval or None,
            "fo": self.failure_options or None,
        }

    def __str__(self):
        return self.raw_text


def extract_tags(dmarc_string):
    """Split ``k=v; k=v;`` into a dict; keys lower-cased, values trimmed."""
    tags = {}
    for part in dmarc_string.split(";"):
        key, sep, value = part.partition("=")
        key = key.strip().lower()
        if sep and key:
            tags[key] = value.strip()
    return tags


def parse_dmarc(dmarc_string, domain):
    """Build a DmarcRecord from a TXT value; None or "" gives the empty record.

    Raises RecordParseError when ``pct`` is not an integer.
    """
    if not dmarc_string:
        return DmarcRecord(domain=domain)

    tags = extract_tags(dmarc_string)

    percent = None
    if "pct" in tags:
        try:
            percent = int(tags["pct"])
        except ValueError:
            raise RecordParseError(domain, "pct", tags["pct"]) from None

    return DmarcRecord(
        domain=domain,
        raw_text=dmarc_string,
        version=tags.get("v", ""),
        policy=tags.get("p", ""),
        subdomain_policy=tags.get("sp", ""),
        percent=percent,
        report_uri=tags.get("rua", ""),
        forensic_uri=tags.get("ruf", ""),
        dkim_alignment=tags.get("adkim", ""),
        spf_alignment=tags.get("aspf", ""),
        report_interval=tags.get("ri", ""),
        failure_options=tags.get("fo", ""),
    )


class DmarcEvaluator(FindingCollector):
    """Decide whether a domain's DMARC policy makes receivers drop forged mail."""

    def __init__(self, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT):
        super().__init__()
        self.resolver = resolver
        self.timeout = timeout

    def fetch(self, domain):
        """Fetch and parse the record at ``_dmarc.<domain>``."""
        validate_domain(domain)
        owner = f"_dmarc.{domain.rstrip('.')}"
        dmarc_string = fetch_record(owner, DMARC_MARKER, self.resolver, self.timeout)
        return parse_dmarc(dmarc_string, domain)

    def is_strong(self, domain):
        return self.evaluate(domain)[1]

    def evaluate(self, domain):
        """Return ``(record, strong)``.

        ``record`` is the record that decided the outcome: the domain's own,
        its organizational domain's, or the empty record when neither exists.
        """
        return self._evaluate(domain, domain)

    def _evaluate(self, domain, queried_domain):
        record = self.fetch(domain)

        if record.present:
            self.note(INFO, f"Found DMARC record for {domain}: {record.raw_text}")
            self._check_extras(record)
            if record.subdomain_policy and is_strict_subdomain(queried_domain, record.domain):
                return record, self._check_subdomain_policy(record, queried_domain)
            return record, self._check_policy(record)

        org_domain = organizational_domain(domain)
        if org_domain and org_domain != domain.rstrip(".").lower():
            logger.debug("No DMARC record for %s, trying organizational domain %s", domain, org_domain)
            self.note(INFO, f"No DMARC record found for {domain}. Looking for organizational record at {org_domain}")
            return self._evaluate(org_domain, queried_domain)

        self.note(BAD, f"{domain} has no DMARC record")
        return record, False

    def _check_policy(self, record):
        if not record.policy:
            self.note(BAD, f"DMARC record for {record.domain} has no policy")
            return False
        if record.policy.lower() in STRONG_POLICIES:
            self.note(GOOD, f"DMARC policy set to: {record.policy}")
            return True
        self.note(BAD, f"DMARC policy set to: {record.policy}")
        return False

    def _check_subdomain_policy(self, record, queried_domain):
        strong = record.subdomain_policy.lower() in STRONG_POLICIES
        self.note(
            GOOD if strong else BAD,
            f"DMARC subdomain policy of {record.domain} applies to {queried_domain}: "
            f"{record.subdomain_policy}",
        )
        return strong

    def _check_extras(self, record):
        if record.percent is not None:
            if not 0 <= record.percent <= 100:
                self.note(WARNING, f"DMARC pct value {record.percent} is outside 0-100")
            elif record.percent != 100:
                self.note(WARNING, f"DMARC pct is set to {record.percent}% - spoofing might be possible")
        if record.report_uri:
            self.note(INDIFFERENT, f"Aggregate reports are sent to: {record.report_uri}")
        if record.forensic_uri:
            self.note(INDIFFERENT, f"Forensics reports are sent to: {record.forensic_uri}")
