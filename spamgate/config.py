"""
Environment configuration for SpamGate.

Values are read from the process environment, with a local .env file
loaded first when present. Secrets are never logged.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from spamgate.orchestrator.gates import DEFAULT_RATE_LIMIT_PER_MINUTE
from spamgate.signals.collector import DEFAULT_MAX_WORKERS
from spamgate.signals.sanitize import DEFAULT_MAX_LENGTH

logger = logging.getLogger("spamgate.config")

DEFAULT_RECAPTCHA_ACTION = "submit_comment"


@dataclass(frozen=True)
class AppConfig:
    akismet_api_key: Optional[str] = None
    akismet_blog_url: Optional[str] = None
    recaptcha_secret_key: Optional[str] = None
    recaptcha_action: str = DEFAULT_RECAPTCHA_ACTION
    ip_salt: str = ""
    admin_token: Optional[str] = None
    settings_path: Optional[str] = None
    audit_path: Optional[str] = None
    audit_blob_connection_string: Optional[str] = None
    audit_blob_container: Optional[str] = None
    max_content_length: int = DEFAULT_MAX_LENGTH
    enrichment_workers: int = DEFAULT_MAX_WORKERS
    rate_limit_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE
    blocklist_path: Optional[str] = None
    log_level: str = "INFO"


def _env(name: str) -> Optional[str]:
    value = (os.getenv(name) or "").strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}; using {default}")
        return default


def load_config(dotenv: bool = True) -> AppConfig:
    """
    Build an AppConfig from the environment.
    """
    if dotenv:
        load_dotenv()

    ip_salt = _env("SPAMGATE_IP_SALT") or ""
    if not ip_salt:
        logger.warning("SPAMGATE_IP_SALT is not set; IP hashes are unsalted.")

    return AppConfig(
        akismet_api_key=_env("AKISMET_API_KEY"),
        akismet_blog_url=_env("AKISMET_BLOG_URL"),
        recaptcha_secret_key=_env("RECAPTCHA_SECRET_KEY"),
        recaptcha_action=_env("RECAPTCHA_ACTION") or DEFAULT_RECAPTCHA_ACTION,
        ip_salt=ip_salt,
        admin_token=_env("SPAMGATE_ADMIN_TOKEN"),
        settings_path=_env("SPAMGATE_SETTINGS_PATH"),
        audit_path=_env("SPAMGATE_AUDIT_PATH"),
        audit_blob_connection_string=_env("SPAMGATE_AUDIT_BLOB_CONNECTION_STRING"),
        audit_blob_container=_env("SPAMGATE_AUDIT_BLOB_CONTAINER"),
        max_content_length=_env_int("SPAMGATE_MAX_CONTENT_LENGTH", DEFAULT_MAX_LENGTH),
        enrichment_workers=max(1, _env_int("SPAMGATE_ENRICHMENT_WORKERS", DEFAULT_MAX_WORKERS)),
        rate_limit_per_minute=_env_int("SPAMGATE_RATE_LIMIT_PER_MINUTE", DEFAULT_RATE_LIMIT_PER_MINUTE),
        blocklist_path=_env("SPAMGATE_BLOCKLIST_PATH"),
        log_level=(_env("SPAMGATE_LOG_LEVEL") or "INFO").upper(),
    )
