import hashlib
import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from spamgate.models.audit_entry import STAGE_ENGINE, STAGE_GATE, AuditEntry
from spamgate.models.decision import Decision
from spamgate.models.signal_bundle import SignalBundle

# The hash never covers itself
HASH_FIELD = "record_hash"


def compute_entry_hash(payload: Dict[str, Any]) -> str:
    """
    SHA-256 over the canonical JSON form of an entry payload
    (sorted keys, compact separators).
    """
    canonical = {k: v for k, v in payload.items() if k != HASH_FIELD}
    serialized = json.dumps(canonical, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


def build_audit_entry(
    *,
    decision: Decision,
    signals: SignalBundle,
    reason: str,
    entry_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    stage: str = STAGE_ENGINE,
) -> AuditEntry:
    """
    Builds a single immutable AuditEntry with its integrity hash.
    """
    if not isinstance(decision, Decision):
        raise ValueError("Audit entry requires a Decision")

    if not reason or not reason.strip():
        raise ValueError("Audit entry requires a reason")

    if stage not in (STAGE_ENGINE, STAGE_GATE):
        raise ValueError(f"Unknown audit stage: {stage}")

    entry_id = entry_id or str(uuid.uuid4())
    created_at = created_at or datetime.now(timezone.utc)

    # Hash is computed on the JSON-serializable form
    payload = dict(
        entry_id=entry_id,
        decision=decision.value,
        reason=reason,
        signals=signals.to_dict(),
        created_at=created_at.isoformat(),
        stage=stage,
    )

    return AuditEntry(
        entry_id=entry_id,
        decision=decision,
        reason=reason,
        signals=signals,
        created_at=created_at,
        record_hash=compute_entry_hash(payload),
        stage=stage,
    )


def verify_entry_hash(entry: AuditEntry) -> bool:
    return compute_entry_hash(entry.to_dict()) == entry.record_hash
