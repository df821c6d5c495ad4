# tests/conftest.py
from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from OSAD.client.credentials import InMemoryCredentials
from OSAD.client.fetcher import DashboardFetcher
from OSAD.settings import Settings

BASE_URL = "http://backend.test/api/v1"


# =========================
# Logging -> stdout
# =========================
@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    """
    Ensure test logs go to stdout so they show up under pytest -s or log_cli=true.
    Avoid duplicates if handler is already present.
    """
    root = logging.getLogger()
    want = None
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stdout:
            want = h
            break
    if want is None:
        want = logging.StreamHandler(sys.stdout)
        want.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(want)

    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


# Make anyio run on asyncio
@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==============================================================
# Fake backend
# ==============================================================


def ok(data: Dict[str, Any], message: str = "OK") -> Dict[str, Any]:
    """The backend's status envelope."""
    return {"status": {"returnCode": "00", "returnMessage": message}, "data": data}


class FakeBackend:
    """
    Routes (method, path) to canned responses and records every request.

    A route value may be a JSON-able body (answered with 200), an
    ``httpx.Response``, an exception instance to raise, or a callable taking
    the request. A list of values is consumed one per call.
    """

    def __init__(self) -> None:
        self.routes: Dict[tuple, Any] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *responses: Any) -> "FakeBackend":
        self.routes[(method.upper(), path)] = list(responses)
        return self

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method.upper())
            and (path is None or r.url.path == "/api/v1" + path)
        ]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api/v1")
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, text=f"no route for {request.method} {path}")

        value = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(value) and not isinstance(value, httpx.Response):
            value = value(request)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json=value)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_base_url=BASE_URL, mutation_retry_delay=1.0, max_inflight=5)


@pytest.fixture
def credentials() -> InMemoryCredentials:
    return InMemoryCredentials("test-token")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_fetcher(settings, credentials, backend, sleeps) -> Callable[..., DashboardFetcher]:
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    def _make(**overrides: Any) -> DashboardFetcher:
        return DashboardFetcher(
            overrides.get("settings", settings),
            overrides.get("credentials", credentials),
            transport=httpx.MockTransport(backend.handler),
            sleep=_sleep,
        )

    return _make


@pytest.fixture
async def fetcher(make_fetcher):
    f = make_fetcher()
    try:
        yield f
    finally:
        await f.aclose()
