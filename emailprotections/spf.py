# emailprotections/spf.py

"""
SPF record parsing and policy-strength evaluation.

A record is strong when its ``all`` mechanism hard- or soft-fails, or when a
``redirect=`` target or any ``include:`` target is itself strong. Expansion of
redirect/include targets is bounded by MAX_RECURSION_DEPTH.
"""

import logging
import re
from dataclasses import dataclass

from .errors import InvalidDomainError, TransportError
from .findings import BAD, GOOD, INFO, WARNING, FindingCollector
from .resolver import DEFAULT_RESOLVER, DEFAULT_TIMEOUT, SPF_MARKER, fetch_record

logger = logging.getLogger("spoofcheck.spf")

MAX_RECURSION_DEPTH = 10
STRONG_ALL_QUALIFIERS = ("-all", "~all")

SPF_VERSION_PATTERN = re.compile(r"^v=spf\d")
SPF_MECHANISM_PATTERN = re.compile(
    r"[+\-~?]?(?:a|mx|ptr|include|ip4|ip6|exists|redirect|exp|all)(?:[:=/]\S*)?",
    re.IGNORECASE,
)
SPF_ALL_PATTERN = re.compile(r"[+\-~?]?all", re.IGNORECASE)
SPF_INCLUDE_PATTERN = re.compile(r"[+\-~?]?include:(\S+)", re.IGNORECASE)
SPF_REDIRECT_PATTERN = re.compile(r"redirect=(\S+)", re.IGNORECASE)


@dataclass(frozen=True)
class SpfRecord:
    """A parsed SPF record. ``raw_text == ""`` means no record was published."""

    domain: str
    raw_text: str = ""
    mechanisms: tuple = ()
    all_qualifier: str = ""
    version: str = ""
    recursion_depth: int = 0

    @property
    def present(self):
        return self.raw_text != ""

    @property
    def all_mechanisms(self):
        return [m for m in self.mechanisms if SPF_ALL_PATTERN.fullmatch(m)]

    @property
    def redirect_domain(self):
        """Target of the first ``redirect=`` modifier, or ""."""
        for mechanism in self.mechanisms:
            match = SPF_REDIRECT_PATTERN.fullmatch(mechanism)
            if match:
                return match.group(1)
        return ""

    @property
    def include_domains(self):
        """Targets of every ``include:`` mechanism, in source order."""
        domains = []
        for mechanism in self.mechanisms:
            match = SPF_INCLUDE_PATTERN.fullmatch(mechanism)
            if match:
                domains.append(match.group(1))
        return domains

    def to_dict(self):
        return {
            "domain": self.domain,
            "record": self.raw_text or None,
            "version": self.version or None,
            "mechanisms": list(self.mechanisms),
            "all": self.all_qualifier or None,
        }

    def __str__(self):
        return self.raw_text


def extract_version(spf_string):
    match = SPF_VERSION_PATTERN.match(spf_string)
    return match.group(0) if match else ""


def extract_mechanisms(spf_string):
    """Return the mechanism tokens of ``spf_string`` in source order."""
    return [
        token for token in spf_string.split() if SPF_MECHANISM_PATTERN.fullmatch(token)
    ]


def extract_all_mechanism(mechanisms):
    """Return the last ``all`` mechanism in ``mechanisms``, or "".

    RFC 7208 evaluates mechanisms left to right so the first ``all`` is the
    one receivers act on; this scan keeps the last one instead.
    """
    all_mechanism = ""
    for mechanism in mechanisms:
        if SPF_ALL_PATTERN.fullmatch(mechanism):
            all_mechanism = mechanism
    return all_mechanism


def parse_spf(spf_string, domain, recursion_depth=0):
    """Build an SpfRecord from a TXT value; None or "" gives the empty record."""
    if not spf_string:
        return SpfRecord(domain=domain, recursion_depth=recursion_depth)

    mechanisms = tuple(extract_mechanisms(spf_string))
    return SpfRecord(
        domain=domain,
        raw_text=spf_string,
        mechanisms=mechanisms,
        all_qualifier=extract_all_mechanism(mechanisms),
        version=extract_version(spf_string),
        recursion_depth=recursion_depth,
    )


class SpfEvaluator(FindingCollector):
    """Decide whether a domain's SPF policy is strong enough to stop spoofing.

    One instance per evaluation; findings accumulate on ``self.findings``.
    """

    def __init__(self, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT,
                 max_depth=MAX_RECURSION_DEPTH):
        super().__init__()
        self.resolver = resolver
        self.timeout = timeout
        self.max_depth = max_depth

    def fetch(self, domain, recursion_depth=0):
        """Fetch and parse the SPF record of ``domain``.

        Raises InvalidDomainError or TransportError.
        """
        spf_string = fetch_record(domain, SPF_MARKER, self.resolver, self.timeout)
        return parse_spf(spf_string, domain, recursion_depth)

    def evaluate(self, domain):
        """Return ``(record, strong)`` for ``domain``; errors propagate."""
        record = self.fetch(domain)
        if not record.present:
            self.note(BAD, f"{domain} has no SPF record")
            return record, False

        self.note(INFO, f"Found SPF record: {record.raw_text}")
        strong = self.is_strong(record)
        if strong:
            self.note(GOOD, f"SPF policy for {domain} is strong")
        else:
            self.note(BAD, f"SPF policy for {domain} is weak")
        return record, strong

    def is_strong(self, record, _path=frozenset()):
        """all check OR redirect check OR include check, short-circuiting."""
        if not record.present:
            return False
        path = _path | {record.domain.rstrip(".").lower()}
        return (
            self.is_all_mechanism_strong(record)
            or self.is_redirect_strong(record, path)
            or self.are_includes_strong(record, path)
        )

    def is_all_mechanism_strong(self, record):
        all_mechanisms = record.all_mechanisms
        if len(all_mechanisms) > 1:
            self.note(
                WARNING,
                f"SPF record for {record.domain} contains multiple `All` items: "
                f"{' '.join(all_mechanisms)} (using {record.all_qualifier})",
            )

        if not record.all_qualifier:
            self.note(BAD, f'SPF record for {record.domain} has no "All" item')
            return False
        if record.all_qualifier.lower() in STRONG_ALL_QUALIFIERS:
            self.note(GOOD, f'SPF record for {record.domain} includes an "All" item: {record.all_qualifier}')
            return True
        self.note(BAD, f'SPF record "All" item for {record.domain} is too weak: {record.all_qualifier}')
        return False

    def is_redirect_strong(self, record, path):
        redirect_domain = record.redirect_domain
        if not redirect_domain:
            return False

        logger.debug("Following SPF redirect %s -> %s", record.domain, redirect_domain)
        self.note(INFO, f"Processing an SPF redirect domain: {redirect_domain}")
        target = self._expand(record, redirect_domain, "redirect", path)
        if target is None:
            return False

        strong = self.is_strong(target, path)
        if strong:
            self.note(GOOD, f"Redirect mechanism {redirect_domain} is strong")
        else:
            self.note(BAD, f"Redirect mechanism {redirect_domain} is not strong")
        return strong

    def are_includes_strong(self, record, path):
        for include_domain in record.include_domains:
            logger.debug("Following SPF include %s -> %s", record.domain, include_domain)
            self.note(INFO, f"Processing an SPF include domain: {include_domain}")
            target = self._expand(record, include_domain, "include", path)
            if target is not None and self.is_strong(target, path):
                self.note(GOOD, f"Include mechanism {include_domain} is strong")
                return True
        return False

    def _expand(self, parent, domain, kind, path):
        """Fetch the SPF record an include/redirect points at, or None.

        Every failure here is local to the branch: the caller treats None as
        not strong.
        """
        if parent.recursion_depth >= self.max_depth:
            logger.warning(
                "SPF recursion depth %d reached at %s, not following %s %s",
                self.max_depth, parent.domain, kind, domain,
            )
            self.note(WARNING, f"SPF recursion limit reached, {kind} {domain} not followed")
            return None

        if domain.rstrip(".").lower() in path:
            logger.warning("Circular SPF %s detected: %s -> %s", kind, parent.domain, domain)
            self.note(WARNING, f"Circular SPF {kind} to {domain} ignored")
            return None

        try:
            target = self.fetch(domain, parent.recursion_depth + 1)
        except InvalidDomainError:
            logger.debug("Invalid SPF %s domain %r in %s", kind, domain, parent.domain)
            self.note(WARNING, f"SPF {kind} domain is not a valid domain name: {domain}")
            return None
        except TransportError as e:
            logger.warning("SPF %s lookup for %s failed: %s", kind, domain, e)
            self.note(WARNING, f"SPF {kind} lookup for {domain} failed: {e.reason}")
            return None

        if not target.present:
            self.note(BAD, f"SPF {kind} domain {domain} has no SPF record")
            return None
        return target
