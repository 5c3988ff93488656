from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from pets_ui_bff.api_client import UpstreamApi, get_upstream_api
from pets_ui_bff.config import Settings
from pets_ui_bff.main import create_app

UPSTREAM_BASE_URL = "http://upstream.test/api"

USER = {"id": 1, "username": "alice", "email": "alice@example.com", "role": "user"}
ADMIN = {"id": 2, "username": "root", "email": "root@example.com", "role": "admin"}


class FakeUpstream:
    """Routes requests by (method, path below /api) and records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: list[httpx.Request] = []

    def reply(self, method: str, path: str, status_code: int, body: Any = None) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            if body is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=body)

        self.routes[(method, path)] = _handler

    def fail(self, method: str, path: str) -> None:
        def _handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, path)] = _handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path.removeprefix("/api")
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        return handler(request)

    def called(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.calls if r.method == method and r.url.path == f"/api{path}"
        ]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def app_settings() -> Settings:
    return Settings(API_BASE_URL=UPSTREAM_BASE_URL, ENVIRONMENT="development")


@pytest.fixture
def client(upstream: FakeUpstream, app_settings: Settings):
    app = create_app(app_settings)
    app.dependency_overrides[get_upstream_api] = lambda: UpstreamApi(
        UPSTREAM_BASE_URL, transport=httpx.MockTransport(upstream)
    )
    with TestClient(app) as c:
        yield c


def log_in_as(client: TestClient, user: dict, token: str = "tok-123") -> None:
    client.cookies.set("auth_token", token)
    client.cookies.set("user", json.dumps(user, separators=(",", ":")))


def set_cookie_headers(response: httpx.Response) -> list[str]:
    return response.headers.get_list("set-cookie")


def cookie_cleared(response: httpx.Response, name: str) -> bool:
    return any(
        h.startswith(f"{name}=") and "Max-Age=0" in h for h in set_cookie_headers(response)
    )


def cookie_set(response: httpx.Response, name: str) -> str | None:
    for h in set_cookie_headers(response):
        if h.startswith(f"{name}=") and "Max-Age=0" not in h:
            return h
    return None
