"""
Transport Client - outbound HTTP with auth injection, timeouts and retry/backoff
"""

import asyncio
import base64
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Literal, Optional

import httpx
from pydantic import BaseModel, Field

from ..errors import HttpError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0

HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


class HttpAuthentication(BaseModel):
    """Credentials injected as request headers"""
    type: Literal["bearer", "basic", "api-key"]
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    apiKey: Optional[str] = None
    apiKeyHeader: Optional[str] = None


class HttpRequestConfig(BaseModel):
    """A single logical request; retries reuse the same config"""
    url: str
    method: HttpMethod = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    timeout: Optional[float] = None  # Seconds
    retries: Optional[int] = None
    retryDelay: Optional[float] = None  # Seconds, doubled per attempt
    authentication: Optional[HttpAuthentication] = None


class HttpResponse(BaseModel):
    status: int
    statusText: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)
    data: Any = None
    executionTime: int = 0  # Milliseconds since the first attempt


class TransportClient:
    """
    Async HTTP client used by the provider router and the tool dispatcher.

    Retry policy: network errors, timeouts (408), 429 and 5xx responses are
    retried up to `retries` times with a delay of `retry_delay * 2**attempt`.
    Other 4xx responses fail immediately.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(transport=transport)
        self._sleep = sleep

    async def __aenter__(self) -> "TransportClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def request(self, config: HttpRequestConfig) -> HttpResponse:
        """Issue a request, retrying retryable failures with exponential backoff"""
        self._validate_url(config.url)

        start_time = time.perf_counter()
        max_retries = self.retries if config.retries is None else config.retries
        base_delay = self.retry_delay if config.retryDelay is None else config.retryDelay
        last_error: Optional[HttpError] = None

        for attempt in range(max_retries + 1):
            try:
                return await self._execute(config, start_time)
            except HttpError as e:
                last_error = e
                if not e.retryable or attempt == max_retries:
                    break

                delay = base_delay * (2 ** attempt)
                logger.warning(
                    f"HTTP {config.method} {config.url} attempt {attempt + 1} failed, "
                    f"retrying in {delay:.2f}s: {e.message}"
                )
                await self._sleep(delay)

        raise last_error or HttpError("HTTP request failed after all retries")

    async def _execute(self, config: HttpRequestConfig, start_time: float) -> HttpResponse:
        timeout = self.timeout if config.timeout is None else config.timeout
        headers = dict(config.headers)

        if config.authentication:
            self._add_authentication_headers(headers, config.authentication)

        content = None
        if config.body is not None:
            if not any(name.lower() == "content-type" for name in headers):
                headers["Content-Type"] = "application/json"
            if config.method != "GET":
                if isinstance(config.body, (str, bytes)):
                    content = config.body
                else:
                    content = json.dumps(config.body, default=str)

        try:
            response = await asyncio.wait_for(
                self.client.request(
                    config.method,
                    config.url,
                    headers=headers,
                    content=content,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise HttpError(f"Request timeout after {timeout}s", status=408)
        except httpx.TransportError as e:
            raise HttpError(f"Network error: Unable to reach the server ({e})", status=0)

        http_response = HttpResponse(
            status=response.status_code,
            statusText=response.reason_phrase,
            headers=dict(response.headers),
            data=self._parse_body(response),
            executionTime=int((time.perf_counter() - start_time) * 1000),
        )

        if not response.is_success:
            raise HttpError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status=response.status_code,
                response=http_response,
            )

        return http_response

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        try:
            if "application/json" in content_type:
                return response.json()
            return response.text
        except ValueError:
            return None

    @staticmethod
    def _add_authentication_headers(headers: Dict[str, str], auth: HttpAuthentication) -> None:
        if auth.type == "bearer":
            if auth.token:
                headers["Authorization"] = f"Bearer {auth.token}"
        elif auth.type == "basic":
            if auth.username and auth.password:
                credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode()).decode()
                headers["Authorization"] = f"Basic {credentials}"
        elif auth.type == "api-key":
            if auth.apiKey:
                headers[auth.apiKeyHeader or "X-API-Key"] = auth.apiKey

    @staticmethod
    def _validate_url(url: str) -> None:
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError):
            raise ValidationError(f"Invalid URL: {url}", field="url")
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValidationError(f"Invalid URL: {url}", field="url")

    # Convenience wrappers

    async def get(self, url: str, **kwargs) -> HttpResponse:
        return await self.request(HttpRequestConfig(url=url, method="GET", **kwargs))

    async def post(self, url: str, body: Any = None, **kwargs) -> HttpResponse:
        return await self.request(HttpRequestConfig(url=url, method="POST", body=body, **kwargs))

    async def put(self, url: str, body: Any = None, **kwargs) -> HttpResponse:
        return await self.request(HttpRequestConfig(url=url, method="PUT", body=body, **kwargs))

    async def delete(self, url: str, **kwargs) -> HttpResponse:
        return await self.request(HttpRequestConfig(url=url, method="DELETE", **kwargs))

    async def patch(self, url: str, body: Any = None, **kwargs) -> HttpResponse:
        return await self.request(HttpRequestConfig(url=url, method="PATCH", body=body, **kwargs))
