"""Owner identity: Firebase ID token verification and the request dependency."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from fastapi import Depends, Header, HTTPException, Request
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

logger = logging.getLogger(__name__)


@dataclass
class OwnerContext:
    owner_id: str
    email: str = ""
    claims: Dict[str, Any] = field(default_factory=dict)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> OwnerContext:
        ...


class FirebaseTokenVerifier:
    """Verifies ID tokens issued by Firebase Authentication (Google sign-in)."""

    def __init__(self, project_id: Optional[str]) -> None:
        self._project_id = project_id
        self._request = google_requests.Request()

    def verify(self, token: str) -> OwnerContext:
        if not self._project_id:
            raise ValueError("firebase project id is not configured")
        claims = id_token.verify_firebase_token(token, self._request, audience=self._project_id)
        if not claims or not claims.get("sub"):
            raise ValueError("token has no subject")
        return OwnerContext(owner_id=claims["sub"], email=claims.get("email", ""), claims=claims)


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_owner_context(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> OwnerContext:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing bearer token")
    token = authorization.split(" ", 1)[1]
    try:
        return verifier.verify(token)
    except Exception as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise HTTPException(status_code=401, detail=f"invalid token: {exc}") from exc
