"""
Local checks that run before any signal is collected.

Rate limiting throttles a client; the other gates settle a submission
without calling a provider or the decision engine:

- honeypot field filled -> reject
- blocklisted keyword, IP, email or email domain -> reject
- repetitive content -> hold
"""
import json
import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Iterable, Optional, Tuple

from spamgate.errors import PersistenceError
from spamgate.models.decision import Decision, DecisionResult
from spamgate.models.submission import Submission
from spamgate.signals.ip_hash import hash_ip

logger = logging.getLogger("spamgate.gates")

DEFAULT_RATE_LIMIT_PER_MINUTE = 3
RATE_LIMIT_WINDOW_SECONDS = 60.0

REPETITION_THRESHOLD = 5
# Words this short are too common to signal repetition
REPETITION_MIN_WORD_LENGTH = 3

REASON_HONEYPOT = "honeypot triggered"
REASON_BLOCKED_KEYWORD = "blocklisted keyword"
REASON_BLOCKED_IP = "blocklisted ip"
REASON_BLOCKED_EMAIL = "blocklisted email"
REASON_BLOCKED_DOMAIN = "blocklisted email domain"
REASON_REPETITIVE = "repetitive content"


# ---------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------

class RateLimiter:
    """
    Sliding-window counter per IP hash, kept in process memory.
    A limit of 0 or less disables the check.
    """

    def __init__(
        self,
        max_per_window: int = DEFAULT_RATE_LIMIT_PER_MINUTE,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.max_per_window > 0

    def allow(self, key: str) -> bool:
        """Count one attempt for key; False once the window is full."""
        if not self.enabled:
            return True

        now = self._clock()
        cutoff = now - self.window_seconds
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.max_per_window:
                return False
            hits.append(now)
            self._prune(cutoff)
            return True

    def retry_after(self, key: str) -> int:
        with self._lock:
            hits = self._hits.get(key)
            if not hits:
                return 0
            return max(1, int(hits[0] + self.window_seconds - self._clock()) + 1)

    def _prune(self, cutoff: float):
        stale = [k for k, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for k in stale:
            del self._hits[k]


# ---------------------------------------------------------
# Blocklist
# ---------------------------------------------------------

def _normalized(values: Iterable[str]) -> Tuple[str, ...]:
    return tuple(sorted({v.strip().lower() for v in values if v and v.strip()}))


@dataclass(frozen=True)
class Blocklist:
    keywords: Tuple[str, ...] = ()
    ip_hashes: Tuple[str, ...] = ()
    emails: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict, ip_salt: str = "") -> "Blocklist":
        """
        Raw addresses under "ips" are hashed with the same salt as
        submissions; only the hashes are kept.
        """
        ip_hashes = [hash_ip(ip, ip_salt) for ip in data.get("ips", []) if ip and ip.strip()]
        ip_hashes.extend(data.get("ip_hashes", []))
        return cls(
            keywords=_normalized(data.get("keywords", [])),
            ip_hashes=_normalized(ip_hashes),
            emails=_normalized(data.get("emails", [])),
            domains=_normalized(d.lstrip("@") for d in data.get("domains", [])),
        )


def load_blocklist(path: str, ip_salt: str = "") -> Blocklist:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Could not read blocklist: {type(e).__name__}") from e

    blocklist = Blocklist.from_dict(data, ip_salt)
    logger.info(
        f"Blocklist loaded: keywords={len(blocklist.keywords)} ips={len(blocklist.ip_hashes)} "
        f"emails={len(blocklist.emails)} domains={len(blocklist.domains)}"
    )
    return blocklist


def check_blocklist(blocklist: Blocklist, content: str, author_email: str, ip_hash: str) -> Optional[str]:
    content_lower = content.lower()
    for keyword in blocklist.keywords:
        if keyword in content_lower:
            return f"{REASON_BLOCKED_KEYWORD}: {keyword}"

    if ip_hash and ip_hash.lower() in blocklist.ip_hashes:
        return REASON_BLOCKED_IP

    email = (author_email or "").strip().lower()
    if email and email in blocklist.emails:
        return REASON_BLOCKED_EMAIL

    domain = email.rpartition("@")[2] if "@" in email else ""
    if domain and domain in blocklist.domains:
        return f"{REASON_BLOCKED_DOMAIN}: {domain}"

    return None


# ---------------------------------------------------------
# Content heuristics
# ---------------------------------------------------------

def is_repetitive(content: str, threshold: int = REPETITION_THRESHOLD) -> bool:
    """True when any word of 3+ characters appears more than threshold times."""
    words = Counter(
        word for word in content.lower().split() if len(word) >= REPETITION_MIN_WORD_LENGTH
    )
    return any(count > threshold for count in words.values())


def run_gates(submission: Submission, blocklist: Blocklist) -> Optional[DecisionResult]:
    """
    First matching gate wins. submission.content must already be sanitized.
    """
    if submission.honeypot and submission.honeypot.strip():
        return DecisionResult(Decision.REJECT, REASON_HONEYPOT)

    blocked = check_blocklist(blocklist, submission.content, submission.author_email, submission.ip_hash)
    if blocked:
        return DecisionResult(Decision.REJECT, blocked)

    if is_repetitive(submission.content):
        return DecisionResult(Decision.HOLD, REASON_REPETITIVE)

    return None
