from typing import List


class SettingsValidationError(ValueError):
    """
    Raised when a settings update carries invalid values.
    The update is rejected as a whole; nothing is written.
    """

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid settings update: " + "; ".join(self.problems))


class EnrichmentUnavailable(Exception):
    """An external signal provider timed out, failed, or is not configured."""

    def __init__(self, provider: str, detail: str = ""):
        self.provider = provider
        self.detail = detail
        message = f"{provider} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PersistenceError(Exception):
    """A settings or audit write could not be completed."""


class ContentRejected(ValueError):
    """Submitted content failed sanitization and cannot be evaluated."""


class RateLimited(Exception):
    """Too many submissions from one client within the rate-limit window."""

    def __init__(self, retry_after: int = 0):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded; retry after {retry_after}s")
