from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from spamgate.audit.entry_builder import verify_entry_hash
from spamgate.decision.engine import decide
from spamgate.models.audit_entry import STAGE_GATE, AuditEntry
from spamgate.models.decision import DecisionResult
from spamgate.models.spam_settings import SpamSettings


def replay_entry(entry: AuditEntry, settings: SpamSettings) -> DecisionResult:
    """
    Re-evaluates a stored decision against the given settings.

    The stored signals are used as-is; no provider is called again.
    Decisions settled by a gate (honeypot, blocklist, repetition) do not
    depend on thresholds and are returned as stored while the engine is
    enabled.

    Raises:
        ValueError: If the entry no longer matches its record hash
    """
    if not verify_entry_hash(entry):
        raise ValueError(f"Audit entry hash mismatch: entry_id={entry.entry_id}")

    if entry.stage == STAGE_GATE and settings.is_enabled:
        return DecisionResult(entry.decision, entry.reason)

    return decide(entry.signals, settings)


@dataclass
class TuningReport:
    replayed: int = 0
    changed: int = 0
    skipped: List[str] = field(default_factory=list)
    # "hold->allow": 3
    transitions: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "replayed": self.replayed,
            "changed": self.changed,
            "skipped": list(self.skipped),
            "transitions": dict(self.transitions),
        }


def tune(entries: Iterable[AuditEntry], candidate: SpamSettings) -> TuningReport:
    """
    Replays a batch of entries against candidate settings and summarizes
    which decisions would change. Read-only.
    """
    report = TuningReport()
    transitions: Counter = Counter()

    for entry in entries:
        try:
            result = replay_entry(entry, candidate)
        except ValueError:
            report.skipped.append(entry.entry_id)
            continue

        report.replayed += 1
        if result.decision != entry.decision:
            report.changed += 1
            transitions[f"{entry.decision.value}->{result.decision.value}"] += 1

    report.transitions = dict(transitions)
    return report
