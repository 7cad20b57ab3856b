"""Single shared-password gate for the dashboard pages.

A correct password is exchanged for a signed session token that expires
after eight hours. There are no users and no roles: either a request carries
a valid token or it does not.
"""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from services.errors import InvalidCredentials, ServerMisconfigured
from settings import Settings

logger = logging.getLogger(__name__)

COOKIE_NAME = "site_auth"
SESSION_TTL = timedelta(hours=8)
JWT_ALGORITHM = "HS256"
_SUBJECT = "site"


class AccessGate:

    def __init__(
        self,
        password: Optional[str],
        signing_key: Optional[str] = None,
        enabled: bool = True,
    ) -> None:
        self.password = password
        self.signing_key = signing_key or password
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessGate":
        return cls(
            password=settings.site_password,
            signing_key=settings.session_secret,
            enabled=settings.password_protection_enabled,
        )

    def ensure_configured(self) -> None:
        if not self.password or not self.signing_key:
            raise ServerMisconfigured(
                "Site password is not configured. Set the SITE_PASSWORD environment variable."
            )

    def login(self, candidate: Any, now: Optional[datetime] = None) -> str:
        """Check ``candidate`` and return a fresh session token."""
        self.ensure_configured()
        if not isinstance(candidate, str) or not candidate:
            raise InvalidCredentials("Incorrect password.")
        if not hmac.compare_digest(candidate.encode("utf-8"), self.password.encode("utf-8")):
            logger.info("Rejected login attempt", extra={"reason": "password mismatch"})
            raise InvalidCredentials("Incorrect password.")
        return self.issue_token(now=now)

    def issue_token(self, now: Optional[datetime] = None) -> str:
        if not self.signing_key:
            raise ServerMisconfigured("No session signing key is configured.")
        issued_at = now or datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": _SUBJECT,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + SESSION_TTL).timestamp()),
        }
        return jwt.encode(payload, self.signing_key, algorithm=JWT_ALGORITHM)

    def is_authenticated(self, token: Optional[str]) -> bool:
        if not self.enabled:
            return True
        if not token or not self.signing_key:
            return False
        try:
            payload = jwt.decode(
                token,
                self.signing_key,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.PyJWTError:
            return False
        return payload.get("sub") == _SUBJECT
