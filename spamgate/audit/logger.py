"""
Best-effort audit logging of spam decisions.

Entries are built synchronously (so the snapshot is exact) and written by
a background worker. The caller's result never depends on the write: any
storage failure is logged, reported to telemetry and dropped.
"""
import logging
import queue
import threading
import time
from typing import Optional

from spamgate.audit.entry_builder import build_audit_entry
from spamgate.models.audit_entry import STAGE_ENGINE, AuditEntry
from spamgate.models.decision import Decision
from spamgate.models.signal_bundle import SignalBundle
from spamgate.storage import AuditStore
from spamgate.telemetry import emit_exception_telemetry

logger = logging.getLogger("spamgate.audit")

_STOP = object()


class BackgroundAuditQueue:
    """
    Single worker thread draining entries into an AuditStore.
    """

    def __init__(self, store: AuditStore, maxsize: int = 10000):
        self.store = store
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()
        self._worker = threading.Thread(
            target=self._run, name="spamgate-audit-writer", daemon=True
        )
        self._worker.start()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def submit(self, entry: AuditEntry) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(entry)
            return True
        except queue.Full:
            logger.error(f"Audit queue full; dropping entry {entry.entry_id}")
            return False

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write(item)
            finally:
                self._queue.task_done()

    def _write(self, entry: AuditEntry):
        try:
            self.store.append(entry)
        except Exception as e:
            # Audit persistence is not part of the decision contract
            logger.error(f"Audit write failed for {entry.entry_id}: {type(e).__name__}")
            emit_exception_telemetry(e, component="audit")

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every queued entry has been handled.
        Returns False if the timeout elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: Optional[float] = None):
        """Stop accepting entries, write what is queued, stop the worker."""
        if self.closed:
            return
        self._closed.set()
        self._queue.put(_STOP)
        self._worker.join(timeout)

    def cancel(self):
        """Stop immediately, dropping entries that were not yet written."""
        if self.closed:
            return
        self._closed.set()
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.warning(f"Audit queue cancelled; dropped {dropped} pending entries")
        self._queue.put(_STOP)


class AuditLogger:
    def __init__(self, audit_queue: BackgroundAuditQueue):
        self.queue = audit_queue

    def record(
        self,
        decision: Decision,
        signals: SignalBundle,
        reason: str,
        stage: str = STAGE_ENGINE,
    ) -> None:
        """
        Hand one decision to the audit trail. Never raises.
        """
        try:
            entry = build_audit_entry(decision=decision, signals=signals, reason=reason, stage=stage)
        except Exception as e:
            logger.error(f"Could not build audit entry: {type(e).__name__}")
            emit_exception_telemetry(e, component="audit")
            return

        if not self.queue.submit(entry):
            logger.warning(f"Audit entry {entry.entry_id} not queued (logger closed or full)")

    def flush(self, timeout: Optional[float] = None) -> bool:
        return self.queue.flush(timeout)

    def close(self, timeout: Optional[float] = None):
        self.queue.close(timeout)
