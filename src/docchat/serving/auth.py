"""Session verification for API requests.

Sign-in happens elsewhere. The session provider hands the browser a
bearer token signed with ``AUTH_SECRET``, and this module only checks
the signature and expiry to find out which user is calling.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from docchat.errors import ConfigurationError, Unauthorized

security = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """The caller of the current request."""

    id: str


class SessionVerifier(ABC):
    """Resolve a bearer token to a user id."""

    @abstractmethod
    def verify(self, token: str) -> str | None:
        """Return the user id for a valid token, ``None`` otherwise."""
        ...


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class SignedSessionVerifier(SessionVerifier):
    """HMAC-SHA256 signed session tokens: ``<payload>.<signature>``.

    The payload is base64url-encoded JSON ``{"sub": user_id, "exp": epoch}``.
    """

    def __init__(self, secret: str, *, ttl_seconds: int = 30 * 24 * 3600) -> None:
        if not secret:
            raise ConfigurationError("AUTH_SECRET is not configured")
        self._key = secret.encode("utf-8")
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: str, *, now: float | None = None) -> str:
        """Create a token for *user_id* (used by the session provider and tests)."""
        issued = time.time() if now is None else now
        payload = _b64encode(
            json.dumps({"sub": user_id, "exp": int(issued + self.ttl_seconds)}).encode("utf-8")
        )
        return f"{payload}.{self._sign(payload)}"

    def verify(self, token: str) -> str | None:
        payload, _, signature = token.partition(".")
        if not payload or not signature:
            return None
        if not hmac.compare_digest(self._sign(payload), signature):
            return None
        try:
            claims = json.loads(_b64decode(payload))
        except ValueError:
            return None
        if not isinstance(claims, dict):
            return None
        expires = claims.get("exp")
        if not isinstance(expires, (int, float)) or expires < time.time():
            return None
        user_id = claims.get("sub")
        return user_id if isinstance(user_id, str) and user_id else None

    def _sign(self, payload: str) -> str:
        return hmac.new(self._key, payload.encode("ascii"), hashlib.sha256).hexdigest()


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> AuthenticatedUser:
    """Dependency that requires a valid session.

    Raises
    ------
    Unauthorized
        No bearer token, or the token does not verify.
    """
    if credentials is None:
        raise Unauthorized("Unauthorized")
    verifier: SessionVerifier = request.app.state.container.sessions
    user_id = verifier.verify(credentials.credentials)
    if user_id is None:
        raise Unauthorized("Unauthorized")
    return AuthenticatedUser(id=user_id)
