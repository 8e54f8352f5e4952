"""Async HTTP client shared by all LLM provider calls."""

import time
import json
import logging
from typing import Any
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """Captured upstream response.

    ``status_code`` is 0 when the upstream could not be reached at all; in
    that case ``error`` describes the transport failure.
    """
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    data: Any = None  # decoded JSON when the response declares it, else the raw text
    elapsed_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def is_json(self) -> bool:
        """Check if response has a JSON content type, including +json suffixes."""
        media_type = self.headers.get("content-type", "").split(";")[0].strip().lower()
        return media_type == "application/json" or media_type.endswith("+json")


class OutboundHttpClient:
    """Single place where the service talks to the network."""

    def __init__(
        self,
        timeout: float = 60.0,
        max_redirects: int = 5,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.verify_ssl = verify_ssl
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                max_redirects=self.max_redirects,
                verify=self.verify_ssl,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        """
        Execute an HTTP request. Never raises for network problems.

        Args:
            method: HTTP method (GET, POST, ...)
            url: Full URL to request
            headers: Request headers
            body: JSON-serialisable request body
            timeout: Request timeout in seconds (overrides default)

        Returns:
            HTTPResponse with status, headers and body; status 0 plus
            ``error`` on transport failure
        """
        client = await self._get_client()

        kwargs: dict[str, Any] = {
            "method": method.upper(),
            "url": url,
            "headers": headers or {},
        }
        if body is not None:
            kwargs["json"] = body
        if timeout:
            kwargs["timeout"] = timeout

        start_time = time.perf_counter()

        try:
            response = await client.request(**kwargs)
        except httpx.TimeoutException as e:
            return self._failure(start_time, f"Timeout: {e}")
        except httpx.ConnectError as e:
            return self._failure(start_time, f"Connection error: {e}")
        except httpx.TooManyRedirects as e:
            return self._failure(start_time, f"Too many redirects: {e}")
        except httpx.HTTPError as e:
            return self._failure(start_time, f"Request error: {e}")
        except httpx.InvalidURL as e:
            return self._failure(start_time, f"Invalid URL: {e}")

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)

        try:
            body_text = response.content.decode("utf-8")
        except UnicodeDecodeError:
            body_text = response.content.decode("latin-1")

        result = HTTPResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=body_text,
            data=body_text,
            elapsed_ms=elapsed_ms,
        )
        if result.is_json():
            try:
                result.data = json.loads(body_text)
            except json.JSONDecodeError:
                logger.debug("Response from %s declared JSON but did not parse", url)

        return result

    def _failure(self, start_time: float, message: str) -> HTTPResponse:
        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return HTTPResponse(status_code=0, elapsed_ms=elapsed_ms, error=message)
