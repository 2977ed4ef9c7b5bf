"""Fitbit OAuth2 endpoints: consent page, callback and token status.

The home page creates a PKCE pair, keeps the verifier in a signed cookie and
links to the Fitbit consent screen. The callback checks the cookie against
the returned ``state``, exchanges the code and stores the tokens through
``TokenStore``.
"""
from __future__ import annotations

import html

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from loguru import logger

from aria.api.deps import get_token_store
from aria.auth import oauth
from aria.auth.pkce import (
    PendingAuthorization,
    build_authorize_url,
    generate_pkce,
    sign_pending,
    verify_pending,
)
from aria.biometrics.token_store import TokenStore
from aria.core.config import Settings, get_settings
from aria.core.errors import InvalidAuthorizationState

router = APIRouter()

PENDING_COOKIE = "aria_pending_auth"

_STYLE = """
  body { font-family: system-ui, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px; }
  a.btn { display: inline-block; padding: 12px 24px; background: #00B0B9; color: white; text-decoration: none; border-radius: 4px; }
  a.btn:hover { background: #008A91; }
  .success { color: #22c55e; }
"""


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    doc = f"""<!doctype html>
<html>
  <head><meta charset='utf-8'/><title>{html.escape(title)}</title><style>{_STYLE}</style></head>
  <body>
{body}
  </body>
</html>"""
    return HTMLResponse(doc, status_code=status_code)


@router.get("/")
def authorize_page(settings: Settings = Depends(get_settings)) -> HTMLResponse:
    missing = settings.missing_credentials()
    if missing:
        names = ", ".join(f"<code>{m}</code>" for m in missing)
        return _page(
            "Fitbit setup required",
            f"<h3>Fitbit setup required</h3><p>Missing {names}. Set it in the environment and restart the server.</p>",
            status_code=400,
        )

    verifier, challenge = generate_pkce()
    pending = PendingAuthorization.new(verifier)
    url = build_authorize_url(settings, challenge, state=pending.nonce)
    resp = _page(
        "Fitbit OAuth Setup",
        "<h1>Fitbit OAuth Setup</h1>"
        "<p>Click the button below to authorize this application with your Fitbit account.</p>"
        f"<a class='btn' href='{html.escape(url)}'>Authorize with Fitbit</a>",
    )
    resp.set_cookie(
        PENDING_COOKIE,
        sign_pending(pending, settings.auth_state_secret),
        max_age=settings.auth_state_ttl,
        httponly=True,
        samesite="lax",
    )
    return resp


@router.get("/callback")
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    settings: Settings = Depends(get_settings),
    token_store: TokenStore = Depends(get_token_store),
) -> HTMLResponse:
    if error:
        logger.warning("Authorization denied: {} {}", error, error_description or "")
        return _page(
            "Authorization Error",
            "<h1>Authorization Failed</h1>"
            f"<p>Error: {html.escape(error)}</p>"
            f"<p>{html.escape(error_description or '')}</p>"
            "<a href='/'>Try Again</a>",
            status_code=400,
        )
    if not code:
        return HTMLResponse("Missing authorization code", status_code=400)

    try:
        pending = verify_pending(
            request.cookies.get(PENDING_COOKIE),
            settings.auth_state_secret,
            settings.auth_state_ttl,
            state=state or "",
        )
    except InvalidAuthorizationState as exc:
        logger.warning("Rejected callback: {}", exc)
        return _page(
            "Authorization Error",
            f"<h1>Authorization Failed</h1><p>{html.escape(str(exc))}</p><a href='/'>Try Again</a>",
            status_code=400,
        )

    try:
        tokens = await oauth.exchange_code(settings, code, pending.verifier)
        record = token_store.save(tokens)
    except Exception as exc:
        logger.error("Token exchange error: {}", exc)
        return _page(
            "Token Exchange Error",
            f"<h1>Token Exchange Failed</h1><p>{html.escape(str(exc))}</p><a href='/'>Try Again</a>",
            status_code=500,
        )

    logger.info("Authorization successful, tokens saved")
    logger.info("You can now stop this server (Ctrl+C) and run: aria fetch")
    resp = _page(
        "Authorization Successful",
        "<h1 class='success'>Authorization Successful!</h1>"
        "<p>Tokens have been saved. You can now close this window and stop the server.</p>"
        f"<p>User ID: {html.escape(str(record.user_id or ''))}</p>"
        f"<p>Scopes: {html.escape(str(record.scope or ''))}</p>",
    )
    resp.delete_cookie(PENDING_COOKIE)
    return resp


@router.get("/status")
def status(token_store: TokenStore = Depends(get_token_store)) -> dict:
    return token_store.status()
