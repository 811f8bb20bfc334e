# emailprotections/resolver.py

"""
TXT record resolution.

Queries go straight to a single resolver endpoint with recursion desired and
an EDNS0 buffer of 4096 bytes, falling back to TCP when the UDP answer is
truncated. Failed exchanges are never retried.
"""

import logging

import dns.exception
import dns.inet
import dns.message
import dns.query
import dns.rcode
import dns.rdatatype

from .domain import validate_domain
from .errors import TransportError

logger = logging.getLogger("spoofcheck.resolver")

CLOUDFLARE_DNS = "1.1.1.1:53"
GOOGLE_PUBLIC_DNS = "8.8.8.8:53"
OPENDNS = "208.67.222.222:53"
QUAD9 = "9.9.9.9:53"

PUBLIC_RESOLVERS = {
    "cloudflare": CLOUDFLARE_DNS,
    "google": GOOGLE_PUBLIC_DNS,
    "opendns": OPENDNS,
    "quad9": QUAD9,
}

DEFAULT_RESOLVER = CLOUDFLARE_DNS
DEFAULT_TIMEOUT = 5.0
EDNS_PAYLOAD = 4096

SPF_MARKER = "v=spf1"
DMARC_MARKER = "v=DMARC1"


def parse_resolver_address(address):
    """Split a ``host[:port]`` resolver address into ``(host, port)``.

    IPv6 addresses carrying a port must be bracketed: ``[2606:4700::1111]:53``.
    """
    address = (address or "").strip()
    if not address:
        raise ValueError("empty resolver address")

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep:
            raise ValueError(f"unterminated IPv6 resolver address: {address}")
        port = rest[1:] if rest.startswith(":") else "53"
    elif address.count(":") == 1:
        host, port = address.split(":")
    else:
        # bare IPv4 or bare IPv6
        host, port = address, "53"

    if not dns.inet.is_address(host):
        raise ValueError(f"resolver must be an IP address: {host}")
    try:
        port = int(port)
    except ValueError:
        raise ValueError(f"invalid resolver port: {port}") from None
    if not 0 < port < 65536:
        raise ValueError(f"resolver port out of range: {port}")
    return host, port


def resolve_txt(owner, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT):
    """Query TXT records at ``owner`` and return their values.

    Each TXT record may be split into several character-strings on the wire;
    they are rejoined into one logical value per record. A name without TXT
    data (NXDOMAIN or an empty answer) yields an empty list.
    """
    host, port = parse_resolver_address(resolver)
    query = dns.message.make_query(
        owner, dns.rdatatype.TXT, use_edns=0, payload=EDNS_PAYLOAD
    )

    try:
        logger.debug("Querying TXT for %s via %s", owner, resolver)
        response, used_tcp = dns.query.udp_with_fallback(
            query, host, timeout=timeout, port=port
        )
    except dns.exception.Timeout as e:
        logger.warning("TXT query timeout for %s via %s", owner, resolver)
        raise TransportError(owner, resolver, "timed out") from e
    except (dns.query.BadResponse, dns.exception.FormError) as e:
        logger.warning("Malformed response for %s via %s: %s", owner, resolver, e)
        raise TransportError(owner, resolver, f"malformed response: {e}") from e
    except dns.exception.DNSException as e:
        logger.warning("DNS error for %s via %s: %s", owner, resolver, e)
        raise TransportError(owner, resolver, str(e)) from e
    except (OSError, EOFError) as e:
        logger.warning("Socket error for %s via %s: %s", owner, resolver, e)
        raise TransportError(owner, resolver, str(e)) from e

    if used_tcp:
        logger.debug("Answer for %s was truncated, retried over TCP", owner)

    rcode = response.rcode()
    if rcode == dns.rcode.NXDOMAIN:
        logger.debug("%s does not exist (NXDOMAIN)", owner)
        return []
    if rcode != dns.rcode.NOERROR:
        reason = dns.rcode.to_text(rcode)
        logger.warning("Resolver %s answered %s for %s", resolver, reason, owner)
        raise TransportError(owner, resolver, reason)

    values = []
    for rrset in response.answer:
        if rrset.rdtype != dns.rdatatype.TXT:
            continue
        for rdata in rrset:
            values.append(b"".join(rdata.strings).decode("utf-8", errors="replace"))
    logger.debug("Got %d TXT record(s) for %s", len(values), owner)
    return values


def select_record(answers, marker):
    """Return the first answer containing ``marker``, or None."""
    for value in answers:
        if marker in value:
            return value
    return None


def fetch_record(owner, marker, resolver=DEFAULT_RESOLVER, timeout=DEFAULT_TIMEOUT):
    """Validate ``owner``, query its TXT records and pick the one carrying ``marker``.

    Raises InvalidDomainError before any query when ``owner`` is malformed.
    """
    validate_domain(owner)
    record = select_record(resolve_txt(owner, resolver, timeout), marker)
    if record is None:
        logger.debug("No %s record at %s", marker, owner)
    return record
