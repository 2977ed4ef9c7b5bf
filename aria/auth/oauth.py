"""Authorization-code exchange against the Fitbit token endpoint."""
from __future__ import annotations

from typing import Any, Dict

import httpx
from loguru import logger

from aria.biometrics.fitbit_client import TOKEN_PATH, basic_auth_header
from aria.core.config import Settings
from aria.core.errors import FitbitApiError, parse_error_body


async def exchange_code(settings: Settings, code: str, code_verifier: str) -> Dict[str, Any]:
    """Trade an authorization code for the initial token set."""
    cid = settings.fitbit_client_id or ""
    headers = {
        "Authorization": basic_auth_header(cid, settings.fitbit_client_secret or ""),
        "Content-Type": "application/x-www-form-urlencoded",
    }
    data = {
        "client_id": cid,
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.fitbit_redirect_uri,
        "code_verifier": code_verifier,
    }
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        r = await client.post(settings.api_base_url + TOKEN_PATH, data=data, headers=headers)
    if r.status_code >= 400:
        error = parse_error_body(r)
        logger.error("Fitbit token exchange error: {} {}", r.status_code, r.text[:500])
        raise FitbitApiError(f"Token exchange failed: {error}", r.status_code, error)
    body = r.json()
    if not isinstance(body, dict):
        raise FitbitApiError(f"Token exchange returned an unexpected body: {body!r}", r.status_code, body)
    return body
