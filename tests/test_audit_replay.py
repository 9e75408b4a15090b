from dataclasses import replace
from datetime import datetime, timezone

import pytest

from spamgate.audit.entry_builder import build_audit_entry
from spamgate.audit.replay import replay_entry, tune
from spamgate.decision.engine import decide
from spamgate.models.decision import Decision
from spamgate.models.signal_bundle import ExternalVerdict, SignalBundle
from spamgate.models.spam_settings import SpamSettings

FIXED_TIME = datetime(2026, 2, 10, 12, 0, tzinfo=timezone.utc)

# =========================================================
# Fixtures
# =========================================================

def _entry(**signal_overrides):
    values = dict(link_count=0, ip_hash="hash", submitted_at=FIXED_TIME)
    values.update(signal_overrides)
    bundle = SignalBundle(**values)
    result = decide(bundle, SpamSettings())
    return build_audit_entry(
        decision=result.decision,
        signals=bundle,
        reason=result.reason,
        created_at=FIXED_TIME,
    )


@pytest.fixture
def history():
    return [
        _entry(external_score=0.9),                          # allow
        _entry(external_score=0.3),                          # hold (risk 0.7)
        _entry(external_score=0.45),                         # hold (risk 0.55)
        _entry(link_count=5, external_score=0.95),           # hold (links)
        _entry(external_verdict=ExternalVerdict.SPAM),       # reject
    ]

# =========================================================
# Tests
# =========================================================

def test_replay_with_same_settings_reproduces_decision(history):
    for entry in history:
        assert replay_entry(entry, SpamSettings()).decision == entry.decision


def test_replay_uses_stored_signals_only(history, mocker):
    spy = mocker.patch("spamgate.audit.replay.decide", wraps=decide)

    replay_entry(history[1], SpamSettings())

    assert spy.call_args[0][0] is history[1].signals


def test_replay_fails_on_tampered_entry(history):
    tampered = replace(history[1], decision=Decision.ALLOW)

    with pytest.raises(ValueError, match="hash mismatch"):
        replay_entry(tampered, SpamSettings())


def test_replay_fails_on_tampered_signals(history):
    forged = replace(history[3].signals, link_count=0)
    tampered = replace(history[3], signals=forged)

    with pytest.raises(ValueError, match="hash mismatch"):
        replay_entry(tampered, SpamSettings())


def test_tune_reports_transitions(history):
    # Risk 0.55 no longer holds; risk 0.7 still does
    candidate = SpamSettings(risk_threshold=0.6)

    report = tune(history, candidate)

    assert report.replayed == 5
    assert report.changed == 1
    assert report.transitions == {"hold->allow": 1}
    assert report.skipped == []


def test_tune_with_disabled_engine_allows_everything(history):
    report = tune(history, SpamSettings(is_enabled=False))

    assert report.changed == 4
    assert report.transitions == {"hold->allow": 3, "reject->allow": 1}


def test_tune_skips_tampered_entries(history):
    tampered = replace(history[0], reason="edited")

    report = tune(history[1:] + [tampered], SpamSettings())

    assert report.replayed == 4
    assert report.skipped == [tampered.entry_id]
    assert report.to_dict()["changed"] == 0


def test_tune_is_read_only(history):
    before = [entry.to_dict() for entry in history]
    tune(history, SpamSettings(link_count_limit=10))
    assert [entry.to_dict() for entry in history] == before


def test_gate_decision_is_reproduced_as_stored():
    bundle = SignalBundle(link_count=0, ip_hash="hash", submitted_at=FIXED_TIME)
    entry = build_audit_entry(
        decision=Decision.REJECT,
        signals=bundle,
        reason="honeypot triggered",
        created_at=FIXED_TIME,
        stage="gate",
    )

    result = replay_entry(entry, SpamSettings(risk_threshold=1.0, link_count_limit=100))

    assert result.decision == Decision.REJECT
    assert result.reason == "honeypot triggered"


def test_gate_decision_replays_as_allow_when_disabled():
    bundle = SignalBundle(link_count=0, ip_hash="hash", submitted_at=FIXED_TIME)
    entry = build_audit_entry(
        decision=Decision.HOLD, signals=bundle, reason="repetitive content", stage="gate"
    )

    report = tune([entry], SpamSettings(is_enabled=False))

    assert report.transitions == {"hold->allow": 1}


def test_stage_is_covered_by_the_hash():
    bundle = SignalBundle(link_count=0, ip_hash="hash", submitted_at=FIXED_TIME)
    entry = build_audit_entry(decision=Decision.HOLD, signals=bundle, reason="repetitive content", stage="gate")

    with pytest.raises(ValueError, match="hash mismatch"):
        replay_entry(replace(entry, stage="engine"), SpamSettings())
