"""Identity verification boundary.

The core only needs ``verify(token) -> VerifiedIdentity``. Production
deployments plug in their identity provider's verifier; ``SignedTokenVerifier``
checks locally signed HMAC tokens for development and tests.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol


class CredentialError(Exception):
    """Raised when a bearer credential cannot be verified."""


@dataclass(frozen=True)
class VerifiedIdentity:
    subject_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> VerifiedIdentity:
        ...


class SignedTokenVerifier:
    """HMAC-SHA256 ``<payload_b64>.<signature>`` tokens."""

    def __init__(self, secret: str, ttl_hours: int = 24) -> None:
        self._secret = secret.encode()
        self.ttl_hours = ttl_hours

    def _sign(self, payload_b64: str) -> str:
        return hmac.new(self._secret, payload_b64.encode(), hashlib.sha256).hexdigest()

    def issue(
        self,
        subject_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> str:
        """Mint a token; used by the dev token script and the test suite."""

        expire = (now or datetime.now(timezone.utc)) + timedelta(hours=self.ttl_hours)
        payload = {"sub": subject_id, "email": email, "name": name, "exp": expire.isoformat()}
        payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()
        return f"{payload_b64}.{self._sign(payload_b64)}"

    def verify(self, token: str) -> VerifiedIdentity:
        parts = token.split(".")
        if len(parts) != 2:
            raise CredentialError("Invalid token format")
        payload_b64, signature = parts
        if not hmac.compare_digest(signature, self._sign(payload_b64)):
            raise CredentialError("Token signature mismatch")
        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64.encode()).decode())
            expires_at = datetime.fromisoformat(payload["exp"])
        except (ValueError, KeyError, TypeError) as exc:
            raise CredentialError("Malformed token payload") from exc
        if datetime.now(timezone.utc) > expires_at:
            raise CredentialError("Token has expired")
        subject_id = payload.get("sub")
        if not subject_id:
            raise CredentialError("Token has no subject")
        return VerifiedIdentity(
            subject_id=str(subject_id),
            email=payload.get("email"),
            name=payload.get("name"),
            claims=payload,
        )


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer`` header value."""

    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
