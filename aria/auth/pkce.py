"""PKCE helpers and the signed pending-authorization token.

The verifier never leaves this process except inside an HMAC-signed,
time-limited token stored in an HttpOnly cookie. The ``state`` sent to Fitbit
is a random nonce that must match the one inside that token.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
import urllib.parse
from dataclasses import dataclass
from typing import Optional

from aria.core.config import Settings
from aria.core.errors import InvalidAuthorizationState


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _b64url_decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def generate_pkce() -> tuple[str, str]:
    """Return ``(verifier, challenge)`` using the S256 method (RFC 7636)."""
    verifier = _b64url(secrets.token_bytes(32))
    challenge = _b64url(hashlib.sha256(verifier.encode()).digest())
    return verifier, challenge


def build_authorize_url(settings: Settings, code_challenge: str, state: Optional[str] = None) -> str:
    params = {
        "client_id": settings.fitbit_client_id or "",
        "response_type": "code",
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "redirect_uri": settings.fitbit_redirect_uri,
        "scope": " ".join(settings.fitbit_scopes),
    }
    if state:
        params["state"] = state
    return settings.authorize_url + "?" + urllib.parse.urlencode(params)


@dataclass
class PendingAuthorization:
    verifier: str
    nonce: str
    issued_at: int

    @classmethod
    def new(cls, verifier: str) -> "PendingAuthorization":
        return cls(verifier=verifier, nonce=secrets.token_urlsafe(16), issued_at=int(time.time()))


def _sign(payload: str, secret: str) -> str:
    return _b64url(hmac.new(secret.encode(), payload.encode(), hashlib.sha256).digest())


def sign_pending(pending: PendingAuthorization, secret: str) -> str:
    body = json.dumps({"v": pending.verifier, "n": pending.nonce, "t": pending.issued_at}, separators=(",", ":"))
    payload = _b64url(body.encode())
    return f"{payload}.{_sign(payload, secret)}"


def verify_pending(
    token: Optional[str],
    secret: str,
    ttl: int,
    state: Optional[str] = None,
    now: Optional[float] = None,
) -> PendingAuthorization:
    """Check signature, age and (optionally) the returned ``state`` nonce."""
    if not token or "." not in token:
        raise InvalidAuthorizationState("No pending authorization. Start again from the home page.")
    payload, sig = token.rsplit(".", 1)
    if not hmac.compare_digest(sig.encode(), _sign(payload, secret).encode()):
        raise InvalidAuthorizationState("Pending authorization signature mismatch.")
    try:
        obj = json.loads(_b64url_decode(payload))
        pending = PendingAuthorization(verifier=str(obj["v"]), nonce=str(obj["n"]), issued_at=int(obj["t"]))
    except (ValueError, KeyError, TypeError) as exc:
        raise InvalidAuthorizationState("Malformed pending authorization.") from exc
    current = time.time() if now is None else now
    if current - pending.issued_at > ttl:
        raise InvalidAuthorizationState("Pending authorization expired. Start again from the home page.")
    if state is not None and not hmac.compare_digest(state.encode(), pending.nonce.encode()):
        raise InvalidAuthorizationState("OAuth state does not match the pending authorization.")
    return pending
