"""Fitbit Web API integration (async).

- Reads tokens through ``TokenStore`` on every call
- Refreshes pre-emptively when the stored token is inside the expiry buffer
- On a 401, refreshes once and retries the request once
- Exposes the read-only body/profile endpoints used by the collector
"""
from __future__ import annotations

import base64
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

import httpx
from loguru import logger

from aria.core.config import Settings, get_settings
from aria.core.errors import (
    ApiResult,
    FitbitApiError,
    FitbitAuthError,
    FitbitError,
    parse_error_body,
)
from .token_store import CredentialRecord, TokenStore, token_store_from_settings

T = TypeVar("T")
DateLike = Union[str, date]

PROFILE_PATH = "/1/user/-/profile.json"
WEIGHT_LOG_PATH = "/1/user/-/body/log/weight/date/{start}/{end}.json"
FAT_LOG_PATH = "/1/user/-/body/log/fat/date/{start}/{end}.json"
WEIGHT_GOAL_PATH = "/1/user/-/body/log/weight/goal.json"
FAT_GOAL_PATH = "/1/user/-/body/log/fat/goal.json"
TOKEN_PATH = "/oauth2/token"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    creds = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    return f"Basic {creds}"


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _fmt_date(value: DateLike) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


class FitbitClient:
    def __init__(
        self,
        token_store: Optional[TokenStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.token_store = token_store or token_store_from_settings(self.settings)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout)

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.settings.api_base_url}{endpoint}"

    @staticmethod
    def _headers(access_token: str, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if extra:
            overridden = {k.lower() for k in extra}
            headers = {k: v for k, v in headers.items() if k.lower() not in overridden}
            headers.update(extra)
        return headers

    # ------------------------------------------------------------------ tokens

    async def refresh(self, client: Optional[httpx.AsyncClient] = None) -> CredentialRecord:
        """Exchange the stored refresh token for a new token set and persist it."""
        if client is None:
            async with self._client() as own:
                return await self._refresh(own)
        return await self._refresh(client)

    async def _refresh(self, client: httpx.AsyncClient) -> CredentialRecord:
        tokens = self.token_store.load()
        if tokens is None or not tokens.refresh_token:
            raise FitbitAuthError("No refresh token available. Please re-authorize the application.")

        s = self.settings
        headers = {
            "Authorization": basic_auth_header(s.fitbit_client_id or "", s.fitbit_client_secret or ""),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        data = {
            "grant_type": "refresh_token",
            "refresh_token": tokens.refresh_token,
        }
        r = await client.post(self._url(TOKEN_PATH), data=data, headers=headers)
        if not _is_success(r.status_code):
            error = parse_error_body(r)
            logger.warning("Token refresh failed: {} {}", r.status_code, r.text[:200])
            if r.status_code in (400, 401):
                raise FitbitAuthError(f"Token refresh failed: {error}. Please re-authorize.")
            raise FitbitApiError(f"Token refresh failed: {error}", r.status_code, error)

        body = r.json()
        if not isinstance(body, dict):
            raise FitbitApiError(f"Token refresh returned an unexpected body: {body!r}", r.status_code, body)
        record = self.token_store.save(body)
        logger.info("Access token refreshed successfully")
        return record

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        tokens = self.token_store.load()
        if tokens is None:
            raise FitbitAuthError('No tokens found. Please run "aria auth" to authorize.')
        if not tokens.access_token or self.token_store.is_expired():
            logger.info("Access token expired, refreshing...")
            tokens = await self._refresh(client)
        return tokens.access_token or ""

    # ----------------------------------------------------------------- request

    async def request(self, method: str, endpoint: str, **options: Any) -> Any:
        """Make an authenticated request and return the parsed JSON body.

        Args:
            method: HTTP method.
            endpoint: API path (e.g. ``/1/user/-/profile.json``) or absolute URL.
            **options: Passed to ``httpx.AsyncClient.request``; ``headers`` are
                merged over the defaults.

        Raises:
            FitbitAuthError: no usable credential, or re-authorization needed.
            FitbitApiError: the API answered with a non-2xx status.
        """
        url = self._url(endpoint)
        extra_headers = options.pop("headers", None)

        async with self._client() as client:
            access_token = await self._access_token(client)
            r = await client.request(method, url, headers=self._headers(access_token, extra_headers), **options)

            if r.status_code == 401:
                logger.info("Received 401, attempting token refresh...")
                try:
                    tokens = await self._refresh(client)
                except FitbitAuthError:
                    raise
                except Exception as exc:
                    raise FitbitAuthError("Authentication failed. Please re-authorize the application.") from exc

                r = await client.request(
                    method, url, headers=self._headers(tokens.access_token or "", extra_headers), **options
                )

            if not _is_success(r.status_code):
                error = parse_error_body(r)
                logger.debug("{} {} -> {}", method, endpoint, r.status_code)
                raise FitbitApiError(f"API request failed: {error}", r.status_code, error)

            return r.json()

    async def get(self, endpoint: str, **options: Any) -> Any:
        return await self.request("GET", endpoint, **options)

    # ---------------------------------------------------------- tagged results

    async def call(self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> ApiResult[T]:
        """Run ``operation`` and capture a classified failure as a value."""
        try:
            return ApiResult(value=await operation(*args, **kwargs))
        except FitbitError as exc:
            return ApiResult(error=exc)

    async def fetch(self, endpoint: str, **options: Any) -> ApiResult[Any]:
        return await self.call(self.get, endpoint, **options)

    # -------------------------------------------------------------- resources

    async def get_profile(self) -> Dict[str, Any]:
        return await self.get(PROFILE_PATH)

    async def get_weight_logs(self, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        return await self.get(WEIGHT_LOG_PATH.format(start=_fmt_date(start_date), end=_fmt_date(end_date)))

    async def get_body_fat_logs(self, start_date: DateLike, end_date: DateLike) -> Dict[str, Any]:
        return await self.get(FAT_LOG_PATH.format(start=_fmt_date(start_date), end=_fmt_date(end_date)))

    async def get_weight_goal(self) -> Dict[str, Any]:
        return await self.get(WEIGHT_GOAL_PATH)

    async def get_body_fat_goal(self) -> Dict[str, Any]:
        return await self.get(FAT_GOAL_PATH)
