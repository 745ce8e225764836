"""Signed session tokens for fully authenticated logins."""

import time
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from otpgate.config import get_settings
from otpgate.utils.logger import get_logger

logger = get_logger(__name__)


class SessionIssuer:
    """Issues and reads itsdangerous-signed session tokens."""

    def __init__(self, secret_key: Optional[str] = None, max_age: Optional[int] = None):
        settings = get_settings()
        self.serializer = URLSafeTimedSerializer(
            secret_key or settings.session_secret_key or "dev-secret-key-change-in-production",
            salt="otpgate-session",
        )
        self.max_age = max_age if max_age is not None else settings.session_max_age

    def issue(self, account_id: str) -> str:
        """Create a signed session token for an account."""
        return self.serializer.dumps({
            "sub": account_id,
            "created_at": int(time.time()),
        })

    def read(self, token: str) -> Optional[dict]:
        """Return the session payload, or None if expired or tampered with."""
        try:
            return self.serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            logger.info("Session expired")
            return None
        except BadSignature:
            logger.warning("Invalid session signature")
            return None
