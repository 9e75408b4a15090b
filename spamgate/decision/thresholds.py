# Default policy gate used when no settings row has been provisioned.
# Admins tune these at runtime through the settings store.

DEFAULT_IS_ENABLED = True
DEFAULT_RISK_THRESHOLD = 0.5
DEFAULT_LINK_COUNT_LIMIT = 2

# Per-call bound for enrichment providers
DEFAULT_TIMEOUT_MS = 1500

DEFAULT_HELD_MESSAGE = "Your comment is being reviewed."
DEFAULT_REJECTED_MESSAGE = "Your comment could not be posted."
DEFAULT_MODEL_ID = "gemini-1.5-flash"
DEFAULT_TRAINING_ACTIVE_BATCH = "2026-01_cold_start"

# Interpretation of risk_threshold (risk = 1 - trust score):
# 0.0 -> any scored submission is held
# 1.0 -> only a trust score of exactly 0.0 is held
