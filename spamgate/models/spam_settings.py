from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional

from spamgate.decision.thresholds import (
    DEFAULT_HELD_MESSAGE,
    DEFAULT_IS_ENABLED,
    DEFAULT_LINK_COUNT_LIMIT,
    DEFAULT_MODEL_ID,
    DEFAULT_REJECTED_MESSAGE,
    DEFAULT_RISK_THRESHOLD,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_TRAINING_ACTIVE_BATCH,
)


@dataclass(frozen=True)
class SpamSettings:
    """
    Admin-tunable policy snapshot consumed by the decision engine.

    model_id and training_active_batch are carried for the admin surface
    and are not read by the engine.
    """
    is_enabled: bool = DEFAULT_IS_ENABLED
    risk_threshold: float = DEFAULT_RISK_THRESHOLD
    link_count_limit: int = DEFAULT_LINK_COUNT_LIMIT
    held_message: str = DEFAULT_HELD_MESSAGE
    rejected_message: str = DEFAULT_REJECTED_MESSAGE
    model_id: str = DEFAULT_MODEL_ID
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    training_active_batch: str = DEFAULT_TRAINING_ACTIVE_BATCH
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SpamSettings":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if values.get("updated_at"):
            values["updated_at"] = datetime.fromisoformat(values["updated_at"])
        return cls(**values)


@dataclass(frozen=True)
class SettingsUpdate:
    """
    Partial settings change. A field left as None is not touched.
    """
    is_enabled: Optional[bool] = None
    risk_threshold: Optional[float] = None
    link_count_limit: Optional[int] = None
    held_message: Optional[str] = None
    rejected_message: Optional[str] = None
    model_id: Optional[str] = None
    timeout_ms: Optional[int] = None
    training_active_batch: Optional[str] = None

    def provided(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
