from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ExternalVerdict(str, Enum):
    SPAM = "spam"
    HAM = "ham"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SignalBundle:
    """
    Every measured input the decision engine sees for one submission.

    external_score is a trust score from the reputation provider
    (higher = more trustworthy). None means the signal was not available.
    """
    link_count: int
    ip_hash: str
    submitted_at: datetime
    external_score: Optional[float] = None
    external_verdict: Optional[ExternalVerdict] = None

    def __post_init__(self):
        if isinstance(self.link_count, bool) or not isinstance(self.link_count, int):
            raise ValueError("link_count must be an integer")
        if self.link_count < 0:
            raise ValueError("link_count must be non-negative")
        if self.external_score is not None and not 0.0 <= self.external_score <= 1.0:
            raise ValueError("external_score must be within [0, 1]")

    def to_dict(self) -> dict:
        return {
            "link_count": self.link_count,
            "external_score": self.external_score,
            "external_verdict": self.external_verdict.value if self.external_verdict else None,
            "ip_hash": self.ip_hash,
            "submitted_at": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SignalBundle":
        verdict = data.get("external_verdict")
        return cls(
            link_count=data["link_count"],
            external_score=data.get("external_score"),
            external_verdict=ExternalVerdict(verdict) if verdict else None,
            ip_hash=data["ip_hash"],
            submitted_at=datetime.fromisoformat(data["submitted_at"]),
        )
