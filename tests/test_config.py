import pytest

from spamgate.config import AppConfig, load_config

ENV_KEYS = [
    "AKISMET_API_KEY",
    "AKISMET_BLOG_URL",
    "RECAPTCHA_SECRET_KEY",
    "RECAPTCHA_ACTION",
    "SPAMGATE_IP_SALT",
    "SPAMGATE_ADMIN_TOKEN",
    "SPAMGATE_SETTINGS_PATH",
    "SPAMGATE_AUDIT_PATH",
    "SPAMGATE_AUDIT_BLOB_CONNECTION_STRING",
    "SPAMGATE_AUDIT_BLOB_CONTAINER",
    "SPAMGATE_MAX_CONTENT_LENGTH",
    "SPAMGATE_LOG_LEVEL",
    "SPAMGATE_ENRICHMENT_WORKERS",
    "SPAMGATE_RATE_LIMIT_PER_MINUTE",
    "SPAMGATE_BLOCKLIST_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment():
    assert load_config(dotenv=False) == AppConfig()


def test_values_are_read_from_environment(monkeypatch):
    monkeypatch.setenv("AKISMET_API_KEY", "abc123")
    monkeypatch.setenv("RECAPTCHA_ACTION", "comment")
    monkeypatch.setenv("SPAMGATE_IP_SALT", "pepper")
    monkeypatch.setenv("SPAMGATE_MAX_CONTENT_LENGTH", "2000")
    monkeypatch.setenv("SPAMGATE_LOG_LEVEL", "debug")

    config = load_config(dotenv=False)

    assert config.akismet_api_key == "abc123"
    assert config.recaptcha_action == "comment"
    assert config.ip_salt == "pepper"
    assert config.max_content_length == 2000
    assert config.log_level == "DEBUG"


def test_blank_values_count_as_missing(monkeypatch):
    monkeypatch.setenv("SPAMGATE_ADMIN_TOKEN", "   ")
    assert load_config(dotenv=False).admin_token is None


def test_bad_integer_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("SPAMGATE_MAX_CONTENT_LENGTH", "lots")
    assert load_config(dotenv=False).max_content_length == 4000


def test_gate_and_pool_settings(monkeypatch):
    monkeypatch.setenv("SPAMGATE_ENRICHMENT_WORKERS", "64")
    monkeypatch.setenv("SPAMGATE_RATE_LIMIT_PER_MINUTE", "0")
    monkeypatch.setenv("SPAMGATE_BLOCKLIST_PATH", "/etc/spamgate/blocklist.json")

    config = load_config(dotenv=False)

    assert config.enrichment_workers == 64
    assert config.rate_limit_per_minute == 0
    assert config.blocklist_path == "/etc/spamgate/blocklist.json"


def test_enrichment_workers_never_below_one(monkeypatch):
    monkeypatch.setenv("SPAMGATE_ENRICHMENT_WORKERS", "0")
    assert load_config(dotenv=False).enrichment_workers == 1
