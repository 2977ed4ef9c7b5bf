"""Core configuration and constants.

Uses environment variables for secrets and configuration. Follows PEP8 and Google style docstrings.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
import os
import secrets

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

DEFAULT_SCOPES = [
    "activity",
    "heartrate",
    "location",
    "nutrition",
    "profile",
    "settings",
    "sleep",
    "social",
    "weight",
]


def _port() -> int:
    return int(os.getenv("PORT", "3000"))


def _clean(value: str | None) -> str | None:
    """Strip stray quotes/whitespace that sneak in from .env files."""
    if value is None:
        return None
    return value.strip().strip('"').strip("'") or None


class Settings(BaseModel):
    """Application settings loaded from environment variables.

    Attributes:
        app_name: App display name.
        fitbit_client_id: OAuth2 Client ID for Fitbit.
        fitbit_client_secret: OAuth2 Client Secret for Fitbit.
        port: Port for the local authorization server.
        fitbit_redirect_uri: OAuth2 Redirect URI configured in Fitbit Developer.
        fitbit_scopes: Scopes requested on the consent screen.
        api_base_url: Fitbit Web API base URL (token and resource endpoints).
        authorize_url: Fitbit consent screen URL.
        token_dir: Directory holding the persisted token record.
        token_key: Key the credential record is stored under.
        http_timeout: Seconds before an outbound request times out.
        auth_state_secret: HMAC secret signing the pending-authorization cookie.
        auth_state_ttl: Seconds a pending authorization stays valid.
        log_level: Logging level string.
        log_file: Optional path of a rotating log file.
    """

    app_name: str = "Aria Data Collector"

    fitbit_client_id: str | None = Field(default_factory=lambda: _clean(os.getenv("FITBIT_CLIENT_ID")))
    fitbit_client_secret: str | None = Field(default_factory=lambda: _clean(os.getenv("FITBIT_CLIENT_SECRET")))

    port: int = Field(default_factory=_port)
    fitbit_redirect_uri: str = Field(
        default_factory=lambda: os.getenv("FITBIT_REDIRECT_URI", f"http://localhost:{_port()}/callback")
    )
    fitbit_scopes: list[str] = Field(
        default_factory=lambda: os.getenv("FITBIT_SCOPES", "").split() or list(DEFAULT_SCOPES)
    )

    api_base_url: str = "https://api.fitbit.com"
    authorize_url: str = "https://www.fitbit.com/oauth2/authorize"

    token_dir: Path = Field(default_factory=lambda: Path(os.getenv("ARIA_TOKEN_DIR", str(Path.home() / ".aria"))))
    token_key: str = Field(default_factory=lambda: os.getenv("ARIA_TOKEN_KEY", "tokens"))

    http_timeout: float = Field(default_factory=lambda: float(os.getenv("HTTP_TIMEOUT", "10")))

    # Pending authorization (PKCE verifier cookie)
    auth_state_secret: str = Field(default_factory=lambda: os.getenv("ARIA_STATE_SECRET") or secrets.token_urlsafe(32))
    auth_state_ttl: int = Field(default_factory=lambda: int(os.getenv("ARIA_STATE_TTL", "600")))

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: str | None = Field(default_factory=lambda: os.getenv("LOG_FILE"))

    def missing_credentials(self) -> list[str]:
        """Return the names of required client settings that are unset."""
        missing = []
        if not self.fitbit_client_id:
            missing.append("FITBIT_CLIENT_ID")
        if not self.fitbit_client_secret:
            missing.append("FITBIT_CLIENT_SECRET")
        return missing


def load_env(path: str | os.PathLike[str] | None = None) -> bool:
    """Load a .env file into os.environ; real environment variables win."""
    return load_dotenv(path or find_dotenv(usecwd=True))


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
