"""FastAPI dependencies shared by the routers."""
from __future__ import annotations

from fastapi import Depends

from aria.biometrics.token_store import TokenStore, token_store_from_settings
from aria.core.config import Settings, get_settings


def get_token_store(settings: Settings = Depends(get_settings)) -> TokenStore:
    return token_store_from_settings(settings)
