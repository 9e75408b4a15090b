"""
Operational telemetry for the spam-decision pipeline.

Events carry categorical values and timings only: never comment text,
client IPs or IP hashes.
"""
import logging
import os
from typing import Optional

from azure.monitor.opentelemetry import configure_azure_monitor
from opentelemetry.trace import get_current_span

logger = logging.getLogger("spamgate.telemetry")

DECISIONS = ("allow", "hold", "reject")


def init_telemetry():
    """
    Export spans to Application Insights when a connection string is set.
    Without one, every emit_* call is a no-op.
    """
    connection_string = os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING")

    if not connection_string:
        return  # Telemetry disabled (local / tests)

    configure_azure_monitor(connection_string=connection_string)
    logger.info("Azure Monitor telemetry configured")


def _active_span():
    span = get_current_span()
    if not span or not span.is_recording():
        return None
    return span


def emit_decision_telemetry(
    decision: str,
    decision_latency_ms: int,
    enrichment_degraded: bool,
):
    assert decision in DECISIONS, f"decision must be one of {DECISIONS}, got {decision}"
    assert isinstance(decision_latency_ms, int), "decision_latency_ms must be int"
    assert isinstance(enrichment_degraded, bool), "enrichment_degraded must be bool"

    span = _active_span()
    if span is None:
        return

    span.add_event(
        name="spamgate.decision",
        attributes={
            "decision": decision,
            "decision_latency_ms": decision_latency_ms,
            "enrichment_degraded": enrichment_degraded,
        },
    )


def emit_enrichment_unavailable(provider: str, detail: Optional[str] = None):
    span = _active_span()
    if span is None:
        return

    attributes = {"provider": provider}
    if detail:
        # Detail codes are fixed strings such as "timeout"; never payloads
        attributes["detail"] = detail
    span.add_event(name="spamgate.enrichment_unavailable", attributes=attributes)


def scrub_exception_for_telemetry(exception: BaseException) -> str:
    """
    Exception messages may embed user data; only the class name is reported.
    """
    return type(exception).__name__


def emit_exception_telemetry(exception: BaseException, component: str = "pipeline"):
    span = _active_span()
    if span is None:
        return

    span.add_event(
        name="spamgate.exception",
        attributes={
            "component": component,
            "exception_type": scrub_exception_for_telemetry(exception),
        },
    )
