# emailprotections/spoofing.py

"""Combine SPF and DMARC strength into a spoofing verdict for one domain."""

import logging
from dataclasses import dataclass, field

from .dmarc import DmarcEvaluator, DmarcRecord
from .domain import validate_domain
from .findings import BAD, GOOD, Finding
from .resolver import DEFAULT_RESOLVER, DEFAULT_TIMEOUT
from .spf import SpfEvaluator, SpfRecord

logger = logging.getLogger("spoofcheck.spoofing")


@dataclass
class SpoofingReport:
    """Verdict, parsed records and findings for one domain."""

    domain: str
    resolver: str
    spf: SpfRecord
    dmarc: DmarcRecord
    spf_strong: bool
    dmarc_strong: bool
    findings: list = field(default_factory=list)

    @property
    def spoofing_possible(self):
        return not self.dmarc_strong

    def to_dict(self):
        return {
            "DOMAIN": self.domain,
            "DNS_RESOLVER": self.resolver,
            "SPF": self.spf.raw_text or None,
            "SPF_VERSION": self.spf.version or None,
            "SPF_ALL": self.spf.all_qualifier or None,
            "SPF_MECHANISMS": list(self.spf.mechanisms),
            "SPF_STRONG": self.spf_strong,
            "DMARC": self.dmarc.raw_text or None,
            "DMARC_DOMAIN": self.dmarc.domain if self.dmarc.present else None,
            "DMARC_POLICY": self.dmarc.policy or None,
            "DMARC_SP": self.dmarc.subdomain_policy or None,
            "DMARC_PCT": self.dmarc.percent,
            "DMARC_ASPF": self.dmarc.spf_alignment or None,
            "DMARC_ADKIM": self.dmarc.dkim_alignment or None,
            "DMARC_AGGREGATE_REPORT": self.dmarc.report_uri or None,
            "DMARC_FORENSIC_REPORT": self.dmarc.forensic_uri or None,
            "DMARC_STRONG": self.dmarc_strong,
            "SPOOFING_POSSIBLE": self.spoofing_possible,
            "FINDINGS": [{"level": f.level, "message": f.message} for f in self.findings],
        }


def check_domain(domain, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT):
    """Evaluate SPF and DMARC for ``domain`` and return a SpoofingReport.

    Raises InvalidDomainError for a malformed domain (before any query),
    TransportError when the domain's own records cannot be fetched, and
    RecordParseError for a DMARC record with a non-numeric ``pct``.
    """
    if isinstance(domain, str):
        domain = domain.strip()
    validate_domain(domain)
    logger.debug("Checking %s via %s", domain, resolver)

    spf_evaluator = SpfEvaluator(resolver, timeout)
    spf, spf_strong = spf_evaluator.evaluate(domain)

    dmarc_evaluator = DmarcEvaluator(resolver, timeout)
    dmarc, dmarc_strong = dmarc_evaluator.evaluate(domain)

    report = SpoofingReport(
        domain=domain,
        resolver=resolver,
        spf=spf,
        dmarc=dmarc,
        spf_strong=spf_strong,
        dmarc_strong=dmarc_strong,
        findings=spf_evaluator.findings + dmarc_evaluator.findings,
    )
    if report.spoofing_possible:
        report.findings.append(Finding(BAD, f"Spoofing possible for {domain}!"))
    else:
        report.findings.append(Finding(GOOD, f"Spoofing not possible for {domain}"))
    return report
