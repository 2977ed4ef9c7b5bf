from __future__ import annotations

import base64
import hashlib
import urllib.parse

import pytest

from aria.auth.pkce import (
    PendingAuthorization,
    build_authorize_url,
    generate_pkce,
    sign_pending,
    verify_pending,
)
from aria.core.errors import InvalidAuthorizationState


def test_challenge_is_s256_of_verifier():
    verifier, challenge = generate_pkce()
    digest = hashlib.sha256(verifier.encode()).digest()
    assert challenge == base64.urlsafe_b64encode(digest).decode().rstrip("=")
    assert 43 <= len(verifier) <= 128
    assert "=" not in verifier


def test_pairs_are_unique():
    assert generate_pkce()[0] != generate_pkce()[0]


def test_authorize_url_parameters(settings):
    url = build_authorize_url(settings, "challenge", state="nonce")
    parsed = urllib.parse.urlparse(url)
    qs = urllib.parse.parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.fitbit.com/oauth2/authorize"
    assert qs["client_id"] == ["client-id"]
    assert qs["response_type"] == ["code"]
    assert qs["code_challenge"] == ["challenge"]
    assert qs["code_challenge_method"] == ["S256"]
    assert qs["redirect_uri"] == ["http://localhost:3000/callback"]
    assert qs["state"] == ["nonce"]
    assert "weight" in qs["scope"][0].split(" ")


def test_pending_round_trip():
    pending = PendingAuthorization(verifier="v" * 43, nonce="n1", issued_at=1000)
    token = sign_pending(pending, "secret")
    assert verify_pending(token, "secret", ttl=600, state="n1", now=1100) == pending


@pytest.mark.parametrize(
    "mutate, kwargs",
    [
        (lambda t: None, {}),
        (lambda t: "garbage", {}),
        (lambda t: t[:-2] + "xx", {}),
        (lambda t: t, {"secret": "other"}),
        (lambda t: t, {"now": 1000 + 601}),
        (lambda t: t, {"state": "n2"}),
    ],
)
def test_pending_rejections(mutate, kwargs):
    pending = PendingAuthorization(verifier="v" * 43, nonce="n1", issued_at=1000)
    token = mutate(sign_pending(pending, "secret"))
    params = {"secret": "secret", "state": "n1", "now": 1100, **kwargs}
    with pytest.raises(InvalidAuthorizationState):
        verify_pending(token, params["secret"], 600, state=params["state"], now=params["now"])


@pytest.mark.parametrize("state", ["é", "nonce-1☃"])
def test_non_ascii_state_is_rejected(state):
    pending = PendingAuthorization(verifier="v" * 43, nonce="n1", issued_at=1000)
    token = sign_pending(pending, "secret")
    with pytest.raises(InvalidAuthorizationState):
        verify_pending(token, "secret", 600, state=state, now=1100)


def test_non_ascii_signature_is_rejected():
    pending = PendingAuthorization(verifier="v" * 43, nonce="n1", issued_at=1000)
    payload = sign_pending(pending, "secret").rsplit(".", 1)[0]
    with pytest.raises(InvalidAuthorizationState):
        verify_pending(payload + ".sïg", "secret", 600, state="n1", now=1100)
