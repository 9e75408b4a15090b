from dataclasses import dataclass
from datetime import datetime

from spamgate.models.decision import Decision
from spamgate.models.signal_bundle import SignalBundle

# Which step settled the decision. Gate decisions do not depend on
# settings and are reproduced as stored on replay.
STAGE_ENGINE = "engine"
STAGE_GATE = "gate"


@dataclass(frozen=True)
class AuditEntry:
    """
    Immutable record of one past decision and the exact signals behind it.
    Written once by the audit logger; never updated or deleted.
    """
    entry_id: str
    decision: Decision
    reason: str
    signals: SignalBundle
    created_at: datetime
    record_hash: str
    stage: str = STAGE_ENGINE

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "decision": self.decision.value,
            "reason": self.reason,
            "signals": self.signals.to_dict(),
            "created_at": self.created_at.isoformat(),
            "record_hash": self.record_hash,
            "stage": self.stage,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            entry_id=data["entry_id"],
            decision=Decision(data["decision"]),
            reason=data["reason"],
            signals=SignalBundle.from_dict(data["signals"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            record_hash=data["record_hash"],
            stage=data.get("stage", STAGE_ENGINE),
        )
