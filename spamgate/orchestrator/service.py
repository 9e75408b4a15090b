import logging
from dataclasses import dataclass
from typing import Optional

from spamgate.audit.logger import AuditLogger, BackgroundAuditQueue
from spamgate.config import AppConfig
from spamgate.integration.akismet import AkismetVerdictProvider
from spamgate.integration.recaptcha import RecaptchaScoreProvider
from spamgate.orchestrator.gates import Blocklist, RateLimiter, load_blocklist
from spamgate.orchestrator.spam_check import SpamCheckPipeline
from spamgate.settings.store import SettingsStore
from spamgate.signals.collector import SignalCollector
from spamgate.storage import (
    AuditStore,
    BlobAuditStore,
    InMemoryAuditStore,
    InMemorySettingsRepository,
    JsonFileSettingsRepository,
    JsonlAuditStore,
    SettingsRepository,
)

logger = logging.getLogger("spamgate.service")


@dataclass
class SpamGateService:
    """Everything one running instance needs, wired once at startup."""
    config: AppConfig
    settings_store: SettingsStore
    audit_store: AuditStore
    audit_logger: AuditLogger
    collector: SignalCollector
    akismet: AkismetVerdictProvider
    pipeline: SpamCheckPipeline

    def shutdown(self, timeout: Optional[float] = 5.0):
        self.audit_logger.close(timeout)
        self.collector.shutdown(wait=False)


def _audit_store(config: AppConfig) -> AuditStore:
    if config.audit_blob_connection_string and config.audit_blob_container:
        logger.info("Audit store: Azure Blob")
        return BlobAuditStore(config.audit_blob_connection_string, config.audit_blob_container)
    if config.audit_path:
        logger.info("Audit store: JSON lines file")
        return JsonlAuditStore(config.audit_path)
    logger.warning("No audit store configured; audit entries are kept in memory only")
    return InMemoryAuditStore()


def _settings_repository(config: AppConfig) -> SettingsRepository:
    if config.settings_path:
        return JsonFileSettingsRepository(config.settings_path)
    logger.warning("No settings path configured; settings are kept in memory only")
    return InMemorySettingsRepository()


def build_service(
    config: AppConfig,
    audit_store: Optional[AuditStore] = None,
    settings_repository: Optional[SettingsRepository] = None,
) -> SpamGateService:
    audit_store = audit_store or _audit_store(config)
    settings_store = SettingsStore(settings_repository or _settings_repository(config))
    audit_logger = AuditLogger(BackgroundAuditQueue(audit_store))

    akismet = AkismetVerdictProvider(config.akismet_api_key, config.akismet_blog_url)
    recaptcha = RecaptchaScoreProvider(config.recaptcha_secret_key, config.recaptcha_action)
    if not akismet.is_configured():
        logger.warning("AKISMET_API_KEY is not configured; verdict signal disabled")
    if not recaptcha.is_configured():
        logger.warning("RECAPTCHA_SECRET_KEY is not configured; score signal disabled")

    collector = SignalCollector(
        reputation=recaptcha, verdict=akismet, max_workers=config.enrichment_workers
    )
    blocklist = load_blocklist(config.blocklist_path, config.ip_salt) if config.blocklist_path else Blocklist()
    pipeline = SpamCheckPipeline(
        settings_store=settings_store,
        collector=collector,
        audit_logger=audit_logger,
        max_content_length=config.max_content_length,
        rate_limiter=RateLimiter(max_per_window=config.rate_limit_per_minute),
        blocklist=blocklist,
    )

    return SpamGateService(
        config=config,
        settings_store=settings_store,
        audit_store=audit_store,
        audit_logger=audit_logger,
        collector=collector,
        akismet=akismet,
        pipeline=pipeline,
    )
