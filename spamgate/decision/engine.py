from typing import Callable, List, Optional

from spamgate.models.decision import Decision, DecisionResult
from spamgate.models.signal_bundle import ExternalVerdict, SignalBundle
from spamgate.models.spam_settings import SpamSettings

REASON_DISABLED = "engine disabled"
REASON_EXTERNAL_SPAM = "external verdict: spam"
REASON_TOO_MANY_LINKS = "link count exceeds limit"
REASON_HIGH_RISK = "risk score above threshold"
REASON_CLEAN = "no signals triggered"

Rule = Callable[[SignalBundle, SpamSettings], Optional[DecisionResult]]


def risk_from_score(score: float) -> float:
    """
    Converts a provider trust score into a risk value.
    Rounded so that boundary comparisons are not skewed by float error.
    """
    return round(1.0 - score, 6)


def check_disabled(bundle: SignalBundle, settings: SpamSettings) -> Optional[DecisionResult]:
    if not settings.is_enabled:
        return DecisionResult(Decision.ALLOW, REASON_DISABLED)
    return None


def check_external_verdict(bundle: SignalBundle, settings: SpamSettings) -> Optional[DecisionResult]:
    if bundle.external_verdict == ExternalVerdict.SPAM:
        return DecisionResult(Decision.REJECT, REASON_EXTERNAL_SPAM)
    return None


def check_link_count(bundle: SignalBundle, settings: SpamSettings) -> Optional[DecisionResult]:
    if bundle.link_count > settings.link_count_limit:
        return DecisionResult(Decision.HOLD, REASON_TOO_MANY_LINKS)
    return None


def check_risk_score(bundle: SignalBundle, settings: SpamSettings) -> Optional[DecisionResult]:
    # An absent score is never treated as maximal risk
    if bundle.external_score is None:
        return None
    if risk_from_score(bundle.external_score) >= settings.risk_threshold:
        return DecisionResult(Decision.HOLD, REASON_HIGH_RISK)
    return None


# Evaluated in order, first match wins
RULES: List[Rule] = [
    check_disabled,
    check_external_verdict,
    check_link_count,
    check_risk_score,
]


def decide(bundle: SignalBundle, settings: SpamSettings) -> DecisionResult:
    """
    Map a signal bundle and a settings snapshot to a decision.

    Pure and deterministic: no I/O, no clock reads, no randomness, so a
    stored bundle can be re-evaluated later against different settings.
    """
    for rule in RULES:
        result = rule(bundle, settings)
        if result is not None:
            return result

    return DecisionResult(Decision.ALLOW, REASON_CLEAN)
