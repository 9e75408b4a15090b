from dataclasses import dataclass
from enum import Enum


class Decision(str, Enum):
    ALLOW = "allow"
    HOLD = "hold"
    REJECT = "reject"


@dataclass(frozen=True)
class DecisionResult:
    """
    Outcome of evaluating one submission.
    Never revised once it has been handed to the audit logger.
    """
    decision: Decision
    reason: str
