"""Pytest configuration shared across the suite."""
from __future__ import annotations

import pytest

from aria.biometrics.token_store import TokenStore
from aria.core.config import Settings
from aria.core.kv_store import MemoryStore

NOW_MS = 1_700_000_000_000


class Clock:
    def __init__(self, now: int = NOW_MS) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        fitbit_client_id="client-id",
        fitbit_client_secret="client-secret",
        fitbit_redirect_uri="http://localhost:3000/callback",
        token_dir=tmp_path,
        auth_state_secret="test-secret",
    )


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def token_store(memory_store, clock) -> TokenStore:
    return TokenStore(memory_store, clock=clock)


@pytest.fixture
def valid_tokens(token_store) -> TokenStore:
    """Token store holding a freshly saved eight-hour record."""
    token_store.save(
        {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "token_type": "Bearer",
            "expires_in": 28800,
            "scope": "weight profile",
            "user_id": "ABC123",
        }
    )
    return token_store
