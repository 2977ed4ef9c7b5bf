"""Token store for Fitbit OAuth2 tokens on top of a key-value store.

A single credential record lives under one key. Reads never raise: missing
or corrupt data is reported as ``None``. Writes raise ``TokenStorageError``.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Mapping, Optional, Union

from loguru import logger

from aria.core.config import Settings
from aria.core.kv_store import JsonFileStore, KeyValueStore

EXPIRY_BUFFER_MS = 5 * 60 * 1000
DEFAULT_KEY = "tokens"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CredentialRecord:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    user_id: Optional[str] = None
    saved_at: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CredentialRecord":
        return cls(**{f.name: data.get(f.name) for f in fields(cls)})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def expires_at_ms(self) -> Optional[float]:
        """Theoretical expiry instant, ignoring the refresh buffer."""
        if not _is_number(self.saved_at) or not _is_number(self.expires_in):
            return None
        return self.saved_at + self.expires_in * 1000  # type: ignore[operator]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def record_is_expired(record: Optional[CredentialRecord], now: int) -> bool:
    """True unless the record is provably valid ``EXPIRY_BUFFER_MS`` from now."""
    if record is None or not record.saved_at or not record.expires_in:
        return True
    expires_at = record.expires_at_ms
    if expires_at is None:
        return True
    return now >= expires_at - EXPIRY_BUFFER_MS


class TokenStore:
    """Persist and inspect the Fitbit credential record."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_KEY,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.key = key
        self.clock = clock

    def load(self) -> Optional[CredentialRecord]:
        data = self.store.get(self.key)
        if data is None:
            return None
        return CredentialRecord.from_mapping(data)

    def save(self, tokens: Union[Mapping[str, Any], CredentialRecord]) -> CredentialRecord:
        """Overwrite the stored record with ``tokens`` stamped with the current time."""
        source = tokens.to_dict() if isinstance(tokens, CredentialRecord) else tokens
        record = CredentialRecord.from_mapping(source)
        record.saved_at = self.clock()
        self.store.put(self.key, record.to_dict())
        logger.info("Tokens saved successfully")
        return record

    def is_expired(self) -> bool:
        return record_is_expired(self.load(), self.clock())

    def clear(self) -> None:
        self.store.delete(self.key)
        logger.info("Tokens cleared")

    def status(self) -> dict[str, Any]:
        """Summarize the stored record without exposing token values."""
        tok = self.load()
        if tok is None:
            return {"connected": False}
        now = self.clock()
        expires_at_ms = tok.expires_at_ms
        expires_at_utc = None
        remaining = None
        if expires_at_ms is not None:
            expires_at_utc = datetime.fromtimestamp(expires_at_ms / 1000, tz=timezone.utc).isoformat()
            remaining = (expires_at_ms - now) / 1000
        return {
            "connected": True,
            "expired": record_is_expired(tok, now),
            "expires_at_utc": expires_at_utc,
            "seconds_to_expiry": remaining,
            "scope": tok.scope,
            "token_type": tok.token_type,
            "user_id": tok.user_id,
        }


def token_store_from_settings(settings: Settings) -> TokenStore:
    return TokenStore(JsonFileStore(settings.token_dir), key=settings.token_key)
