"""
Admin-tunable settings for the decision engine.

Reads return the stored row or defaults. Updates are validated field by
field and written as one whole row; concurrent admin updates are
last-write-wins with no locking.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from numbers import Real
from typing import Callable, List

from spamgate.errors import PersistenceError, SettingsValidationError
from spamgate.models.spam_settings import SettingsUpdate, SpamSettings
from spamgate.storage import SettingsRepository

logger = logging.getLogger("spamgate.settings")

MAX_MESSAGE_LENGTH = 500
MAX_TIMEOUT_MS = 30000


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_update(update: SettingsUpdate) -> List[str]:
    """
    Return every problem with the provided fields (empty list = valid).
    """
    problems = []
    values = update.provided()

    if "is_enabled" in values and not isinstance(values["is_enabled"], bool):
        problems.append("is_enabled must be a boolean")

    if "risk_threshold" in values:
        threshold = values["risk_threshold"]
        if isinstance(threshold, bool) or not isinstance(threshold, Real):
            problems.append("risk_threshold must be a number")
        elif not 0.0 <= threshold <= 1.0:
            problems.append("risk_threshold must be between 0 and 1")

    if "link_count_limit" in values:
        limit = values["link_count_limit"]
        if not _is_int(limit):
            problems.append("link_count_limit must be an integer")
        elif limit < 0:
            problems.append("link_count_limit must be >= 0")

    if "timeout_ms" in values:
        timeout_ms = values["timeout_ms"]
        if not _is_int(timeout_ms):
            problems.append("timeout_ms must be an integer")
        elif not 0 < timeout_ms <= MAX_TIMEOUT_MS:
            problems.append(f"timeout_ms must be between 1 and {MAX_TIMEOUT_MS}")

    for name in ("held_message", "rejected_message"):
        if name in values:
            message = values[name]
            if not isinstance(message, str) or not message.strip():
                problems.append(f"{name} must be a non-empty string")
            elif len(message) > MAX_MESSAGE_LENGTH:
                problems.append(f"{name} must be at most {MAX_MESSAGE_LENGTH} characters")

    for name in ("model_id", "training_active_batch"):
        if name in values and (not isinstance(values[name], str) or not values[name].strip()):
            problems.append(f"{name} must be a non-empty string")

    return problems


class SettingsStore:
    def __init__(
        self,
        repository: SettingsRepository,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.repository = repository
        self._clock = clock

    def get(self) -> SpamSettings:
        """
        Current settings, or defaults if no row has been provisioned.
        """
        stored = self.repository.load()
        if stored is None:
            return SpamSettings()
        return stored

    def update(self, update: SettingsUpdate) -> SpamSettings:
        """
        Merge the provided fields over the current row and persist it.

        Raises SettingsValidationError (nothing written) or
        PersistenceError (write failed).
        """
        problems = validate_update(update)
        if problems:
            logger.warning(f"Rejected settings update: {problems}")
            raise SettingsValidationError(problems)

        values = update.provided()
        if "risk_threshold" in values:
            values["risk_threshold"] = float(values["risk_threshold"])

        merged = replace(self.get(), **values, updated_at=self._clock())

        try:
            self.repository.save(merged)
        except PersistenceError:
            logger.error("Settings write failed")
            raise

        logger.info(f"Settings updated: fields={sorted(values)}")
        return merged
