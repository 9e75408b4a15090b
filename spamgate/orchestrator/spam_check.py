"""
Spam check pipeline for a single comment submission.

rate limit -> settings snapshot -> sanitize -> gates -> collect signals
-> decide -> audit
"""
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from spamgate.audit.logger import AuditLogger
from spamgate.decision.engine import decide
from spamgate.errors import ContentRejected, PersistenceError, RateLimited
from spamgate.models.audit_entry import STAGE_ENGINE, STAGE_GATE
from spamgate.models.decision import Decision
from spamgate.models.signal_bundle import ExternalVerdict, SignalBundle
from spamgate.models.spam_settings import SpamSettings
from spamgate.models.submission import Submission
from spamgate.orchestrator.gates import Blocklist, RateLimiter, run_gates
from spamgate.settings.store import SettingsStore
from spamgate.signals.collector import SignalCollector
from spamgate.signals.sanitize import DEFAULT_MAX_LENGTH, sanitize_content
from spamgate.telemetry import emit_decision_telemetry

logger = logging.getLogger("spamgate.pipeline")


@dataclass(frozen=True)
class SpamCheckResult:
    decision: Decision
    reason: str
    message: Optional[str]
    content: str  # sanitized
    link_count: int
    ip_hash: str
    external_score: Optional[float] = None
    external_verdict: Optional[ExternalVerdict] = None
    enrichment_degraded: bool = False
    stage: str = STAGE_ENGINE

    @property
    def is_approved(self) -> bool:
        return self.decision == Decision.ALLOW


def message_for(decision: Decision, settings: SpamSettings) -> Optional[str]:
    if decision == Decision.HOLD:
        return settings.held_message
    if decision == Decision.REJECT:
        return settings.rejected_message
    return None


class SpamCheckPipeline:
    def __init__(
        self,
        settings_store: SettingsStore,
        collector: SignalCollector,
        audit_logger: AuditLogger,
        max_content_length: int = DEFAULT_MAX_LENGTH,
        rate_limiter: Optional[RateLimiter] = None,
        blocklist: Optional[Blocklist] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings_store = settings_store
        self.collector = collector
        self.audit_logger = audit_logger
        self.max_content_length = max_content_length
        # No limiter means no throttling
        self.rate_limiter = rate_limiter or RateLimiter(max_per_window=0)
        self.blocklist = blocklist or Blocklist()
        self._clock = clock

    def check(self, submission: Submission) -> SpamCheckResult:
        """
        Evaluate one submission.

        Raises RateLimited when the client exceeded its window, and
        ContentRejected when the body cannot be sanitized; neither is
        scored or audited.
        """
        start_time = time.perf_counter()

        if not self.rate_limiter.allow(submission.ip_hash):
            logger.info("Submission rate limited")
            raise RateLimited(self.rate_limiter.retry_after(submission.ip_hash))

        # One snapshot per decision; admin updates apply to later requests
        try:
            settings = self.settings_store.get()
        except PersistenceError:
            # Evaluation must still happen; fall back to the default policy
            logger.error("Settings unavailable; evaluating with defaults")
            settings = SpamSettings()

        sanitized = sanitize_content(submission.content, self.max_content_length)
        if sanitized.rejected:
            logger.info(f"Submission rejected by sanitizer: {sanitized.reject_reason}")
            raise ContentRejected(sanitized.reject_reason)

        clean_submission = replace(submission, content=sanitized.content)

        # Gates are spam policy; a disabled engine skips them too
        gated = run_gates(clean_submission, self.blocklist) if settings.is_enabled else None
        if gated is not None:
            bundle = SignalBundle(
                link_count=sanitized.link_count,
                ip_hash=submission.ip_hash,
                submitted_at=self._clock(),
            )
            return self._finish(gated, bundle, settings, sanitized.content, STAGE_GATE, False, start_time)

        collected = self.collector.collect(
            clean_submission,
            timeout_ms=settings.timeout_ms,
            link_count=sanitized.link_count,
        )
        result = decide(collected.bundle, settings)
        return self._finish(
            result, collected.bundle, settings, sanitized.content, STAGE_ENGINE, collected.degraded, start_time
        )

    def _finish(self, result, bundle, settings, content, stage, degraded, start_time) -> SpamCheckResult:
        # Fire and forget; the response does not wait on persistence
        self.audit_logger.record(result.decision, bundle, result.reason, stage=stage)

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        emit_decision_telemetry(
            decision=result.decision.value,
            decision_latency_ms=latency_ms,
            enrichment_degraded=degraded,
        )
        logger.info(
            f"DECISION={result.decision.value} STAGE={stage} REASON={result.reason!r} "
            f"LINKS={bundle.link_count} DEGRADED={degraded} LATENCY={latency_ms}ms"
        )

        return SpamCheckResult(
            decision=result.decision,
            reason=result.reason,
            message=message_for(result.decision, settings),
            content=content,
            link_count=bundle.link_count,
            ip_hash=bundle.ip_hash,
            external_score=bundle.external_score,
            external_verdict=bundle.external_verdict,
            enrichment_degraded=degraded,
            stage=stage,
        )
