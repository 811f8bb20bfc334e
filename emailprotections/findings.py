# emailprotections/findings.py

"""Structured observations collected while evaluating a domain."""

from collections import namedtuple

GOOD = "good"
BAD = "bad"
WARNING = "warning"
INFO = "info"
INDIFFERENT = "indifferent"

LEVELS = (GOOD, BAD, WARNING, INFO, INDIFFERENT)

Finding = namedtuple("Finding", ["level", "message"])


class FindingCollector:
    """Mixin giving evaluators a ``findings`` list and a helper to append to it."""

    def __init__(self):
        self.findings = []

    def note(self, level, message):
        self.findings.append(Finding(level, message))
