import logging
from typing import Optional

import requests

from spamgate.errors import EnrichmentUnavailable
from spamgate.models.submission import Submission
from spamgate.signals.providers import ReputationProvider

logger = logging.getLogger("spamgate.integration.recaptcha")

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


class RecaptchaScoreProvider(ReputationProvider):
    """
    reCAPTCHA v3 trust score. 1.0 is very likely human, 0.0 very likely a bot.
    """

    name = "recaptcha"

    def __init__(
        self,
        secret_key: Optional[str],
        expected_action: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.secret_key = secret_key
        self.expected_action = expected_action
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def score(self, submission: Submission, timeout: float) -> float:
        if not self.is_configured():
            raise EnrichmentUnavailable(self.name, "not_configured")
        if not submission.recaptcha_token:
            raise EnrichmentUnavailable(self.name, "token_missing")

        payload = {"secret": self.secret_key, "response": submission.recaptcha_token}
        if submission.client_ip:
            payload["remoteip"] = submission.client_ip

        try:
            response = self.session.post(SITEVERIFY_URL, data=payload, timeout=timeout)
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.Timeout as e:
            raise EnrichmentUnavailable(self.name, "timeout") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise EnrichmentUnavailable(self.name, "request_failed") from e

        if not result.get("success"):
            codes = ",".join(result.get("error-codes", []))
            raise EnrichmentUnavailable(self.name, f"verification_failed:{codes}")

        if self.expected_action and result.get("action") != self.expected_action:
            raise EnrichmentUnavailable(self.name, "action_mismatch")

        try:
            score = float(result["score"])
        except (KeyError, TypeError, ValueError) as e:
            raise EnrichmentUnavailable(self.name, "score_missing") from e

        # Clamp in case the provider ever drifts outside its documented range
        return min(1.0, max(0.0, score))
