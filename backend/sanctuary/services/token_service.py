"""
Sanctuary Backend — Token Service
===================================

What:  Issues and verifies signed, time-limited bearer tokens.
How:   PyJWT with HS256 and a process-wide secret from Settings.
Who:   UserService.login() issues tokens; the authentication gate
       (sanctuary.auth) verifies them on every protected request.

Token claims:
    {"email": ..., "userId": ..., "iat": <issued>, "exp": <issued + ttl>}

There is no revocation list: expiry is the only invalidation mechanism.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from sanctuary.config import Settings, settings as default_settings
from sanctuary.exceptions import InvalidTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller attached to the request by the gate."""
    email: str
    user_id: str


class TokenService:
    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self._secret = config.jwt_secret
        self._algorithm = config.jwt_algorithm
        self._ttl = config.token_ttl_seconds

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds (reported to clients at login)."""
        return self._ttl

    def issue(self, identity: Identity, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "email": identity.email,
            "userId": identity.user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self._ttl)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        """
        Verify signature and expiry and return the embedded identity.

        Raises:
            InvalidTokenError: malformed token, bad signature, expired token,
                or missing identity claims.
        """
        if not token:
            raise InvalidTokenError("Token is empty")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.PyJWTError as e:
            logger.debug("Token rejected: %s", e)
            raise InvalidTokenError(context={"reason": type(e).__name__})

        email = payload.get("email")
        user_id = payload.get("userId")
        if not isinstance(email, str) or not isinstance(user_id, str) or not email or not user_id:
            raise InvalidTokenError("Token is missing identity claims")
        return Identity(email=email, user_id=user_id)


token_service = TokenService()
