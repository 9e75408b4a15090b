"""
Comment content sanitization.

Normalizes whitespace, strips control characters, enforces a maximum
length and refuses markup that could execute in a browser.
"""
import re
from dataclasses import dataclass
from typing import Optional

from spamgate.signals.links import count_links

DEFAULT_MAX_LENGTH = 4000

DANGEROUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"<[^>]*\bon\w+\s*=", re.IGNORECASE),  # <img onerror=...>
    re.compile(r"data:\s*text/html", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
]

_EXCESS_NEWLINES = re.compile(r"\n{4,}")
# Keeps \t (0x09), \n (0x0A) and \r (0x0D)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


@dataclass(frozen=True)
class SanitizeResult:
    content: str
    link_count: int
    truncated: bool
    rejected: bool
    reject_reason: Optional[str] = None


def _rejected(reason: str) -> SanitizeResult:
    return SanitizeResult(content="", link_count=0, truncated=False, rejected=True, reject_reason=reason)


def sanitize_content(content: str, max_length: int = DEFAULT_MAX_LENGTH) -> SanitizeResult:
    """
    Sanitize a raw comment body.

    Links are counted before truncation so that padding a message cannot
    hide links from the decision engine.
    """
    if not content or not isinstance(content, str) or not content.strip():
        return _rejected("Empty content")

    # Normalize first: stripped control characters can join a split tag
    sanitized = _CONTROL_CHARS.sub("", content).strip()
    sanitized = _EXCESS_NEWLINES.sub("\n\n\n", sanitized)
    if not sanitized:
        return _rejected("Empty content")

    for pattern in DANGEROUS_PATTERNS:
        if pattern.search(sanitized):
            return _rejected("Contains potentially dangerous content")

    link_count = count_links(sanitized)

    truncated = False
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
        # Cut at a word boundary when one is close to the limit
        last_space = sanitized.rfind(" ")
        if last_space > 0 and last_space > max_length - 100:
            sanitized = sanitized[:last_space]
        sanitized += "…"
        truncated = True

    return SanitizeResult(
        content=sanitized,
        link_count=link_count,
        truncated=truncated,
        rejected=False,
    )
