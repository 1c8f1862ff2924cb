"""Shared test fixtures for docwatch tests."""

from __future__ import annotations

from typing import Mapping

import pytest

from docwatch.ingestion.transport import TransportError, TransportResponse

BASE = "http://docs.example/xml/"


class FakeTransport:
    """In-memory transport serving canned responses and recording requests."""

    def __init__(self) -> None:
        self.routes: dict[str, TransportResponse | Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def serve(
        self,
        url: str,
        body: str = "",
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.routes[url] = TransportResponse(status=status, headers=dict(headers or {}), body=body)

    def fail(self, url: str, message: str = "connection refused") -> None:
        self.routes[url] = TransportError(message)

    def remove(self, url: str) -> None:
        self.routes.pop(url, None)

    def request(self, method: str, url: str) -> TransportResponse:
        self.calls.append((method, url))
        route = self.routes.get(url)
        if route is None:
            return TransportResponse(status=404)
        if isinstance(route, Exception):
            raise route
        if method == "HEAD":
            return TransportResponse(status=route.status, headers=route.headers)
        return route

    def count(self, method: str, url: str) -> int:
        return self.calls.count((method, url))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def base_url() -> str:
    """Base path every fake document is served under."""
    return BASE


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
