from abc import ABC, abstractmethod

from spamgate.models.signal_bundle import ExternalVerdict
from spamgate.models.submission import Submission


class ReputationProvider(ABC):
    """
    Source of a trust score in [0, 1] (higher = more trustworthy).
    """

    name = "reputation"

    @abstractmethod
    def is_configured(self) -> bool:
        """Return False when credentials are missing; no call is made then."""
        pass

    @abstractmethod
    def score(self, submission: Submission, timeout: float) -> float:
        """
        Return the trust score, or raise EnrichmentUnavailable.
        """
        pass


class VerdictProvider(ABC):
    """
    Source of a categorical spam verdict.
    """

    name = "verdict"

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def verdict(self, submission: Submission, timeout: float) -> ExternalVerdict:
        """
        Return the verdict, or raise EnrichmentUnavailable.
        """
        pass
