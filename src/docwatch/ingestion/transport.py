"""HTTP transport used to fetch and probe remote documents."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

import requests
from requests.structures import CaseInsensitiveDict


class TransportError(Exception):
    """Raised when a request cannot be completed (connection, timeout, DNS)."""


@dataclass(slots=True)
class TransportResponse:
    """Status, headers, and decoded body of a completed request.

    Attributes:
        status: HTTP status code.
        headers: Response headers with case-insensitive lookup.
        body: Decoded response text; empty for ``HEAD`` requests.
    """

    status: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            self.headers = CaseInsensitiveDict(self.headers)

    @property
    def ok(self) -> bool:
        """Return whether the status code is in the 2xx range."""
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """Return a header value, or ``None`` when absent or blank."""
        value = self.headers.get(name)
        return value or None

    def json(self) -> Any:
        """Decode the body as JSON.

        Raises:
            ValueError: If the body is not valid JSON.
        """
        return json.loads(self.body)


class Transport(Protocol):
    """Anything able to issue a request and return a :class:`TransportResponse`."""

    def request(self, method: str, url: str) -> TransportResponse:
        """Issue ``method`` against ``url``.

        Raises:
            TransportError: If no response could be obtained.
        """
        ...


class RequestsTransport:
    """Transport backed by a :class:`requests.Session`."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float = 10.0,
        user_agent: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout
        if user_agent:
            self._session.headers["User-Agent"] = user_agent
        if headers:
            self._session.headers.update(headers)

    def request(self, method: str, url: str) -> TransportResponse:
        try:
            response = self._session.request(
                method.upper(), url, timeout=self._timeout, allow_redirects=True
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method.upper()} {url} failed: {exc}") from exc

        body = "" if method.upper() == "HEAD" else response.text
        return TransportResponse(
            status=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            body=body,
        )

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()


__all__ = ["Transport", "TransportError", "TransportResponse", "RequestsTransport"]
