"""Queue-driven stand-ins for ``httpx.AsyncClient``."""
from __future__ import annotations

import json
from typing import Any, List


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("response body is not JSON")
        return self._payload


class FakeHttp:
    """Callable that replaces ``httpx.AsyncClient``; every client shares one queue."""

    def __init__(self, responses: List[FakeResponse]):
        self.queue = list(responses)
        self.calls: List[dict] = []
        self.opened = 0

    def __call__(self, *args: Any, **kwargs: Any) -> "_FakeAsyncClient":
        self.opened += 1
        return _FakeAsyncClient(self)

    def _next(self, method: str, url: str, headers: dict | None, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {}), **kwargs})
        if not self.queue:
            raise AssertionError(f"Unexpected request to {url}")
        return self.queue.pop(0)

    @property
    def urls(self) -> List[str]:
        return [c["url"] for c in self.calls]


class _FakeAsyncClient:
    def __init__(self, http: FakeHttp):
        self._http = http

    async def __aenter__(self) -> "_FakeAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        return None

    async def request(self, method: str, url: str, headers: dict | None = None, **kwargs: Any) -> FakeResponse:
        return self._http._next(method, url, headers, **kwargs)

    async def post(self, url: str, data: dict | None = None, headers: dict | None = None, **kwargs: Any) -> FakeResponse:
        return self._http._next("POST", url, headers, data=data, **kwargs)
