"""
Signal collection for one submission.

Link count is measured locally; trust score and verdict come from
external providers which are queried concurrently, each bounded by the
configured timeout measured from when the call starts running. A call
that waits in the pool longer than one timeout is abandoned as well, so
collect() returns within two timeouts. A failing provider degrades its
signal to absent and never fails the collection.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from spamgate.errors import EnrichmentUnavailable
from spamgate.models.signal_bundle import SignalBundle
from spamgate.models.submission import Submission
from spamgate.signals.links import count_links
from spamgate.signals.providers import ReputationProvider, VerdictProvider
from spamgate.telemetry import emit_enrichment_unavailable

logger = logging.getLogger("spamgate.signals")


@dataclass(frozen=True)
class CollectionResult:
    bundle: SignalBundle
    # Providers that were configured but could not deliver a signal
    unavailable: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.unavailable)


DEFAULT_MAX_WORKERS = 32


class _PendingCall:
    """A submitted provider call and the moment it started running."""

    def __init__(self):
        self.started = threading.Event()
        self.started_at: Optional[float] = None
        self.future: Optional[Future] = None

    def run(self, fn, submission: Submission, timeout: float):
        self.started_at = time.monotonic()
        self.started.set()
        return fn(submission, timeout)


class SignalCollector:
    def __init__(
        self,
        reputation: Optional[ReputationProvider] = None,
        verdict: Optional[VerdictProvider] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.reputation = reputation
        self.verdict = verdict
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="spamgate-enrich"
        )
        self._clock = clock

    def collect(
        self,
        submission: Submission,
        timeout_ms: int,
        link_count: Optional[int] = None,
    ) -> CollectionResult:
        """
        Build the SignalBundle for a submission.

        link_count may be supplied when the caller already measured it
        (e.g. on sanitized content); otherwise it is counted here.
        """
        timeout = timeout_ms / 1000.0
        submitted_at = self._clock()

        if link_count is None:
            link_count = count_links(submission.content)

        score_call = self._submit(self.reputation, "score", submission, timeout)
        verdict_call = self._submit(self.verdict, "verdict", submission, timeout)

        # Both calls share one bound on time spent queued for a worker
        queue_deadline = time.monotonic() + timeout
        unavailable: List[str] = []
        score = self._resolve(self.reputation, score_call, timeout, queue_deadline, unavailable)
        verdict = self._resolve(self.verdict, verdict_call, timeout, queue_deadline, unavailable)

        bundle = SignalBundle(
            link_count=link_count,
            ip_hash=submission.ip_hash,
            submitted_at=submitted_at,
            external_score=score,
            external_verdict=verdict,
        )
        return CollectionResult(bundle=bundle, unavailable=unavailable)

    def _submit(self, provider, method: str, submission: Submission, timeout: float) -> Optional[_PendingCall]:
        if provider is None:
            return None
        if not provider.is_configured():
            logger.debug(f"{provider.name} not configured; skipping")
            return None
        call = _PendingCall()
        call.future = self._executor.submit(call.run, getattr(provider, method), submission, timeout)
        return call

    def _resolve(
        self,
        provider,
        call: Optional[_PendingCall],
        timeout: float,
        queue_deadline: float,
        unavailable: List[str],
    ):
        if call is None:
            return None
        if not call.started.wait(max(0.0, queue_deadline - time.monotonic())):
            call.future.cancel()
            self._degrade(provider.name, "queue_timeout", unavailable)
            return None
        try:
            # Providers enforce their own HTTP timeout; this bounds the wait
            # even when a provider ignores it.
            remaining = call.started_at + timeout - time.monotonic()
            return call.future.result(timeout=max(0.0, remaining))
        except FutureTimeoutError:
            self._degrade(provider.name, "timeout", unavailable)
        except EnrichmentUnavailable as e:
            self._degrade(provider.name, e.detail or "unavailable", unavailable)
        except Exception as e:
            logger.exception(f"{provider.name} raised unexpectedly")
            self._degrade(provider.name, type(e).__name__, unavailable)
        return None

    def _degrade(self, provider_name: str, detail: str, unavailable: List[str]):
        logger.warning(f"Enrichment unavailable: provider={provider_name} detail={detail}")
        emit_enrichment_unavailable(provider_name, detail)
        unavailable.append(provider_name)

    def shutdown(self, wait: bool = False):
        self._executor.shutdown(wait=wait, cancel_futures=True)
