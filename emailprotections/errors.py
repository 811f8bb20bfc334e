# emailprotections/errors.py

"""Exceptions raised by the SPF/DMARC evaluation engine."""


class SpoofCheckError(Exception):
    """Base class for every error raised while checking a domain."""


class InvalidDomainError(SpoofCheckError):
    """The domain failed syntactic validation; no query was issued."""

    def __init__(self, domain):
        self.domain = domain
        super().__init__(f"invalid domain name: {domain!r}")


class TransportError(SpoofCheckError):
    """The DNS exchange with the resolver failed (timeout, refusal, bad response)."""

    def __init__(self, owner, resolver, reason):
        self.owner = owner
        self.resolver = resolver
        self.reason = reason
        super().__init__(f"TXT query for {owner} via {resolver} failed: {reason}")


class RecordParseError(SpoofCheckError):
    """A present record carries a tag value that cannot be converted."""

    def __init__(self, domain, tag, value):
        self.domain = domain
        self.tag = tag
        self.value = value
        super().__init__(f"cannot parse {tag}={value!r} in record for {domain}")
