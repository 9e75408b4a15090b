from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Submission:
    """
    Raw comment submission as received from the caller.

    ip_hash is computed by the caller; client_ip is only forwarded to
    enrichment providers that require it and is never persisted.
    """
    content: str
    ip_hash: str
    client_ip: Optional[str] = None
    user_agent: str = ""
    author_name: str = ""
    author_email: str = ""
    permalink: str = ""
    recaptcha_token: Optional[str] = None
    # Hidden form field; humans leave it empty
    honeypot: str = ""
