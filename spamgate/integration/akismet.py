"""
Akismet comment-check integration (categorical spam verdict).

Also exposes submit-spam / submit-ham so that admin moderation can feed
corrections back to Akismet.
"""
import logging
from typing import Optional

import requests

from spamgate.errors import EnrichmentUnavailable
from spamgate.models.signal_bundle import ExternalVerdict
from spamgate.models.submission import Submission
from spamgate.signals.providers import VerdictProvider

logger = logging.getLogger("spamgate.integration.akismet")

AKISMET_HOST = "rest.akismet.com"
AKISMET_API_VERSION = "1.1"
REPORT_TIMEOUT_SECONDS = 5.0


class AkismetVerdictProvider(VerdictProvider):
    name = "akismet"

    def __init__(
        self,
        api_key: Optional[str],
        blog_url: Optional[str],
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.blog_url = blog_url or ""
        self.session = session or requests.Session()
        self.user_agent = "SpamGate/1.0 | Akismet/1.0"

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _endpoint(self, method: str) -> str:
        return f"https://{self.api_key}.{AKISMET_HOST}/{AKISMET_API_VERSION}/{method}"

    def _form(self, submission: Submission) -> dict:
        return {
            "blog": self.blog_url,
            "user_ip": submission.client_ip or "",
            "user_agent": submission.user_agent,
            "permalink": submission.permalink,
            "comment_type": "comment",
            "comment_author": submission.author_name,
            "comment_author_email": submission.author_email,
            "comment_content": submission.content,
        }

    def verdict(self, submission: Submission, timeout: float) -> ExternalVerdict:
        if not self.is_configured():
            raise EnrichmentUnavailable(self.name, "not_configured")

        try:
            response = self.session.post(
                self._endpoint("comment-check"),
                data=self._form(submission),
                headers={"User-Agent": self.user_agent},
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise EnrichmentUnavailable(self.name, "timeout") from e
        except requests.exceptions.RequestException as e:
            raise EnrichmentUnavailable(self.name, "request_failed") from e

        body = response.text.strip()
        if body == "true":
            return ExternalVerdict.SPAM
        if body == "false":
            return ExternalVerdict.HAM

        # "invalid" or debug help: the key or request was rejected
        debug_help = response.headers.get("X-akismet-debug-help")
        logger.warning(f"Akismet returned unexpected body; debug_help={debug_help!r}")
        return ExternalVerdict.UNKNOWN

    def _report(self, method: str, submission: Submission) -> bool:
        if not self.is_configured():
            return False
        try:
            response = self.session.post(
                self._endpoint(method),
                data=self._form(submission),
                headers={"User-Agent": self.user_agent},
                timeout=REPORT_TIMEOUT_SECONDS,
            )
            return response.ok
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to call Akismet {method}: {type(e).__name__}")
            return False

    def report_spam(self, submission: Submission) -> bool:
        """Report a missed spam comment (admin marked it as spam)."""
        return self._report("submit-spam", submission)

    def report_ham(self, submission: Submission) -> bool:
        """Report a false positive (admin approved a flagged comment)."""
        return self._report("submit-ham", submission)
