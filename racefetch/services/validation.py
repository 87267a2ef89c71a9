"""Validation gates: decide whether a strategy's text counts as a win.

A strategy can succeed at the transport level (HTTP 200) and still hand back
an HTML error page, a bot challenge or an empty body. The gate is what keeps
the fastest *wrong* answer from winning a race.
"""

from __future__ import annotations

import logging
import re
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_INVALID_REASON = "not the expected format"

_SITEMAP_ROOT_RE = re.compile(
    r"<\s*(?:[A-Za-z_][\w.-]*:)?(urlset|sitemapindex)\b", re.IGNORECASE
)

# Strong signals of an interstitial / challenge page. Only checked on the
# first few KB so a sitemap that lists a "/captcha" URL is not flagged.
_BLOCK_PATTERNS = (
    "just a moment",
    "checking your browser",
    "attention required",
    "cf-browser-verification",
    "verify you are human",
    "are you a robot",
    "not a robot",
    "access denied",
    "enable javascript",
    "please wait while we verify",
)


def is_likely_sitemap_xml(text: str) -> bool:
    """True if *text* contains a <urlset> or <sitemapindex> element (any prefix)."""
    if not text:
        return False
    return _SITEMAP_ROOT_RE.search(text) is not None


def looks_blocked(text: str) -> bool:
    """True if *text* looks like a bot challenge or access-denied page."""
    if not text:
        return False
    head = text[:5000].lower()
    return any(pattern in head for pattern in _BLOCK_PATTERNS)


def describe_sitemap_failure(text: str) -> str:
    if not text or not text.strip():
        return "empty body"
    if looks_blocked(text):
        return "blocked by bot challenge"
    return "not sitemap XML"


class ValidationGate:
    """A pure predicate over raw text, plus an explanation for rejections.

    ``gate(text)`` returns a bool; ``gate.check(text)`` returns None for a
    valid text or the reason it was rejected. A predicate that raises is
    treated as a rejection rather than propagated.
    """

    __slots__ = ("_predicate", "_describe", "name")

    def __init__(
        self,
        predicate: Callable[[str], bool],
        describe: Callable[[str], str] | None = None,
        name: str | None = None,
    ):
        self._predicate = predicate
        self._describe = describe
        self.name = name or getattr(predicate, "__name__", "gate")

    def __repr__(self) -> str:
        return f"<ValidationGate {self.name}>"

    def __call__(self, text: str) -> bool:
        return self.check(text) is None

    def check(self, text: str) -> str | None:
        try:
            if self._predicate(text):
                return None
        except Exception as e:
            logger.debug(f"Validation gate {self.name} raised: {e}")
            return f"validator error: {e}"

        if self._describe is None:
            return DEFAULT_INVALID_REASON
        try:
            return self._describe(text)
        except Exception:
            return DEFAULT_INVALID_REASON


def as_gate(gate: ValidationGate | Callable[[str], bool]) -> ValidationGate:
    """Wrap a bare predicate so callers can pass either form."""
    if isinstance(gate, ValidationGate):
        return gate
    return ValidationGate(gate)


sitemap_gate = ValidationGate(
    is_likely_sitemap_xml,
    describe=describe_sitemap_failure,
    name="sitemap_xml",
)
