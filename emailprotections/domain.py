# emailprotections/domain.py

"""
Domain name helpers.

Syntactic validation runs before every DNS query issued by the engine, and
the organizational domain (public suffix + one label) drives the DMARC
fallback lookup.
"""

import logging
import re

import tldextract

from .errors import InvalidDomainError

logger = logging.getLogger("spoofcheck.domain")

DOMAIN_NAME_PATTERN = re.compile(
    r"[a-zA-Z0-9_][a-zA-Z0-9_-]{0,62}(?:\.[a-zA-Z0-9_][a-zA-Z0-9_-]{0,62})*\.?"
)

# Bundled public suffix snapshot only, never fetched over the network.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def is_valid_domain(name):
    """Return True if ``name`` matches the DNS label grammar."""
    if not isinstance(name, str) or not name.strip():
        return False
    if len(name.rstrip(".")) > 253:
        return False
    return DOMAIN_NAME_PATTERN.fullmatch(name) is not None


def validate_domain(name):
    """Raise InvalidDomainError unless ``name`` is a syntactically valid domain."""
    if not is_valid_domain(name):
        logger.debug("Rejecting invalid domain %r", name)
        raise InvalidDomainError(name)
    return name


def organizational_domain(name):
    """Return the registrable domain for ``name``, or "" if it has none.

    mail.example.co.uk -> example.co.uk
    """
    hostname = name.strip().rstrip(".").lower()
    if not hostname:
        return ""
    return _tld_extract(hostname).top_domain_under_public_suffix


def is_strict_subdomain(name, parent):
    """True if ``name`` sits below ``parent`` in the DNS tree."""
    name = name.rstrip(".").lower()
    parent = parent.rstrip(".").lower()
    return name != parent and name.endswith("." + parent)
