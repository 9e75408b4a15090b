import hmac
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Any, Dict, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

from spamgate.audit.replay import tune
from spamgate.config import load_config
from spamgate.errors import ContentRejected, PersistenceError, RateLimited, SettingsValidationError
from spamgate.models.decision import Decision
from spamgate.models.spam_settings import SettingsUpdate, SpamSettings
from spamgate.models.submission import Submission
from spamgate.orchestrator.service import SpamGateService, build_service
from spamgate.settings.store import validate_update
from spamgate.signals.ip_hash import client_ip_from_headers, hash_ip
from spamgate.telemetry import emit_exception_telemetry, init_telemetry

logger = logging.getLogger("spamgate.api")
access_logger = logging.getLogger("spamgate.access")

tags_metadata = [
    {
        "name": "Comments",
        "description": "Spam decision for incoming comment submissions.",
    },
    {
        "name": "Admin",
        "description": "Settings, audit trail and threshold tuning. Requires the admin bearer token.",
    },
    {
        "name": "System",
        "description": "Health checks and operational metadata.",
    },
]


# --- DATA MODELS ---
class CommentCheckRequest(BaseModel):
    content: str
    client_ip: Optional[str] = None
    user_agent: Optional[str] = None
    author_name: str = ""
    author_email: str = ""
    permalink: str = ""
    recaptcha_token: Optional[str] = None
    honeypot: str = ""


class CommentCheckResponse(BaseModel):
    decision: Literal["allow", "hold", "reject"]
    reason: str
    message: Optional[str] = None
    link_count: int
    external_score: Optional[float] = None
    external_verdict: Optional[str] = None
    enrichment_degraded: bool = False


class SettingsUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    is_enabled: Optional[StrictBool] = Field(default=None, alias="isEnabled")
    model_id: Optional[str] = Field(default=None, alias="modelId")
    timeout_ms: Optional[StrictInt] = Field(default=None, alias="timeoutMs")
    risk_threshold: Optional[float] = Field(default=None, alias="riskThreshold")
    training_active_batch: Optional[str] = Field(default=None, alias="trainingActiveBatch")
    held_message: Optional[str] = Field(default=None, alias="heldMessage")
    rejected_message: Optional[str] = Field(default=None, alias="rejectedMessage")
    link_count_limit: Optional[StrictInt] = Field(default=None, alias="linkCountLimit")

    def to_update(self) -> SettingsUpdate:
        return SettingsUpdate(**self.model_dump(by_alias=False, exclude_none=True))


class FeedbackRequest(BaseModel):
    verdict: Literal["spam", "ham"]
    content: str
    client_ip: Optional[str] = None
    user_agent: str = ""
    author_name: str = ""
    author_email: str = ""
    permalink: str = ""


def settings_to_camel(settings: SpamSettings) -> Dict[str, Any]:
    return {
        "isEnabled": settings.is_enabled,
        "riskThreshold": settings.risk_threshold,
        "linkCountLimit": settings.link_count_limit,
        "heldMessage": settings.held_message,
        "rejectedMessage": settings.rejected_message,
        "modelId": settings.model_id,
        "timeoutMs": settings.timeout_ms,
        "trainingActiveBatch": settings.training_active_batch,
        "updatedAt": settings.updated_at.isoformat() if settings.updated_at else None,
    }


def _storage_failure(e: Exception) -> JSONResponse:
    logger.error(f"ENGINE_ERROR: storage unavailable ({type(e).__name__})")
    emit_exception_telemetry(e, component="storage")
    return JSONResponse(status_code=500, content={"success": False, "error": "Storage unavailable"})


def create_app(service: SpamGateService) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down; draining audit queue")
        service.shutdown()

    app = FastAPI(
        title="SpamGate",
        description="""
        **Comment spam-decision service.**

        * **Signals:** link count, reCAPTCHA trust score, Akismet verdict.
        * **Decision:** allow / hold / reject from admin-tunable thresholds.
        * **Audit:** every decision is recorded with its inputs for replay.
        """,
        version="1.0.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.service = service

    bearer = HTTPBearer(auto_error=False)

    def require_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)):
        expected = service.config.admin_token
        if not expected:
            raise HTTPException(status_code=503, detail="Admin access is not configured")
        if credentials is None or not hmac.compare_digest(
            credentials.credentials.encode("utf-8"), expected.encode("utf-8")
        ):
            raise HTTPException(status_code=401, detail="Invalid admin token")

    # --- MIDDLEWARE: ACCESS TRAIL ---
    @app.middleware("http")
    async def access_middleware(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        # No client address: IPs are only ever stored hashed
        access_logger.info(
            f"METHOD={request.method} PATH={request.url.path} "
            f"STATUS={response.status_code} DURATION={process_time:.4f}s"
        )
        return response

    # --- ENDPOINTS ---

    @app.post("/comments/check", response_model=CommentCheckResponse, tags=["Comments"])
    def check_comment(body: CommentCheckRequest, request: Request):
        """
        Decide whether a comment is published, held for review, or rejected.
        """
        fallback_ip = request.client.host if request.client else "unknown"
        client_ip = body.client_ip or client_ip_from_headers(request.headers, fallback_ip)

        submission = Submission(
            content=body.content,
            ip_hash=hash_ip(client_ip, service.config.ip_salt),
            client_ip=client_ip,
            user_agent=body.user_agent or request.headers.get("user-agent", ""),
            author_name=body.author_name,
            author_email=body.author_email,
            permalink=body.permalink,
            recaptcha_token=body.recaptcha_token,
            honeypot=body.honeypot,
        )

        try:
            result = service.pipeline.check(submission)
        except RateLimited as e:
            raise HTTPException(
                status_code=429,
                detail="Too many comments; try again later",
                headers={"Retry-After": str(e.retry_after)},
            )
        except ContentRejected as e:
            raise HTTPException(status_code=422, detail=str(e))
        except Exception as e:
            logger.error(f"ENGINE_ERROR: {type(e).__name__}")
            emit_exception_telemetry(e)
            raise HTTPException(status_code=500, detail="Spam check failed")

        return {
            "decision": result.decision.value,
            "reason": result.reason,
            "message": result.message,
            "link_count": result.link_count,
            "external_score": result.external_score,
            "external_verdict": result.external_verdict.value if result.external_verdict else None,
            "enrichment_degraded": result.enrichment_degraded,
        }

    @app.get("/admin/settings", tags=["Admin"], dependencies=[Depends(require_admin)])
    def read_settings():
        try:
            return settings_to_camel(service.settings_store.get())
        except PersistenceError as e:
            return _storage_failure(e)

    @app.put("/admin/settings", tags=["Admin"], dependencies=[Depends(require_admin)])
    def update_settings(body: SettingsUpdateRequest):
        try:
            service.settings_store.update(body.to_update())
        except SettingsValidationError as e:
            return JSONResponse(status_code=400, content={"success": False, "error": str(e)})
        except PersistenceError:
            return JSONResponse(status_code=500, content={"success": False, "error": "Settings could not be saved"})
        return {"success": True}

    @app.get("/admin/audit", tags=["Admin"], dependencies=[Depends(require_admin)])
    def list_audit(
        decision: Optional[Decision] = None,
        limit: int = Query(default=100, ge=1, le=1000),
    ):
        try:
            entries = service.audit_store.list_entries(limit=limit, decision=decision)
        except PersistenceError as e:
            return _storage_failure(e)
        return [entry.to_dict() for entry in entries]

    @app.post("/admin/audit/replay", tags=["Admin"], dependencies=[Depends(require_admin)])
    def replay_audit(
        body: SettingsUpdateRequest,
        limit: int = Query(default=500, ge=1, le=5000),
    ):
        """
        Preview how recent decisions would change under candidate settings.
        Nothing is written.
        """
        update = body.to_update()
        problems = validate_update(update)
        if problems:
            return JSONResponse(status_code=400, content={"success": False, "error": "; ".join(problems)})

        try:
            candidate = replace(service.settings_store.get(), **update.provided())
            entries = service.audit_store.list_entries(limit=limit)
        except PersistenceError as e:
            return _storage_failure(e)
        report = tune(entries, candidate)
        return {"success": True, "candidate": settings_to_camel(candidate), **report.to_dict()}

    @app.post("/admin/feedback", tags=["Admin"], dependencies=[Depends(require_admin)])
    def report_feedback(body: FeedbackRequest):
        """
        Report a moderation correction back to Akismet.
        """
        submission = Submission(
            content=body.content,
            ip_hash="",
            client_ip=body.client_ip,
            user_agent=body.user_agent,
            author_name=body.author_name,
            author_email=body.author_email,
            permalink=body.permalink,
        )
        if body.verdict == "spam":
            ok = service.akismet.report_spam(submission)
        else:
            ok = service.akismet.report_ham(submission)
        return {"success": ok}

    @app.get("/health", tags=["System"])
    def health():
        return {
            "status": "online",
            "modules": ["Signals", "Decision", "Settings", "AuditLog"],
            "enrichment": {
                "akismet": service.akismet.is_configured(),
                "recaptcha": service.collector.reputation is not None
                and service.collector.reputation.is_configured(),
            },
        }

    return app


# --- SETUP LOGGING ---
_config = load_config()
logging.basicConfig(
    level=_config.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

init_telemetry()

app = create_app(build_service(_config))
