# app/ingestion/http.py
"""
HTTP plumbing for weather provider calls.

Single-shot requests only. The weather gateway owns retries (tenacity,
see app.resilience) and circuit breaking; this layer turns httpx failures
into HttpClientError subclasses that the retry policy can classify.

Provider credentials travel as query parameters (OpenWeatherMap `appid`,
WeatherAPI.com `key`), so anything logged or raised here uses the
redacted parameter set.
"""

from typing import Any, Dict, Optional

import httpx

from ..logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0

# Query parameters that carry provider credentials
SECRET_PARAMS = frozenset({"appid", "key", "api_key", "apikey"})


class HttpClientError(Exception):
    """Base exception for HTTP client errors."""
    pass


class HttpTimeoutError(HttpClientError):
    """Raised when request times out."""
    pass


class HttpConnectionError(HttpClientError):
    """Raised when the remote host cannot be reached."""
    pass


class HttpStatusError(HttpClientError):
    """Raised when response has non-2xx status."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


def redact_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of params with credential values masked."""
    return {
        name: "***" if name.lower() in SECRET_PARAMS else value
        for name, value in (params or {}).items()
    }


def fetch(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Response:
    """
    Perform a single GET request.

    Raises:
        HttpTimeoutError: Request timed out
        HttpConnectionError: Network-level failure
        HttpStatusError: Non-2xx response
    """
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response
    except httpx.TimeoutException as e:
        logger.warning("http_timeout", url=url, params=redact_params(params), timeout=timeout)
        raise HttpTimeoutError(f"Timeout after {timeout}s fetching {url}") from e
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.warning("http_status_error", url=url, params=redact_params(params), status_code=status)
        raise HttpStatusError(status, f"Error fetching {url}") from e
    except httpx.TransportError as e:
        logger.warning("http_connection_error", url=url, params=redact_params(params), error=type(e).__name__)
        raise HttpConnectionError(f"Connection error fetching {url}: {type(e).__name__}") from e


class HttpClient:
    """
    Base-URL bound client used by the provider adapters.

    Usage:
        client = HttpClient(base_url="https://api.openweathermap.org/data/2.5")
        payload = client.get_json("/weather", params={"lat": 39.9, "lon": -105.1})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self.transport = transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}" if self.base_url else path

    def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        return fetch(
            url=self._url(path),
            params=params,
            headers={**self.headers, **(headers or {})},
            timeout=self.timeout,
            transport=self.transport,
        )

    def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        GET request returning the decoded JSON body.

        Raises:
            HttpClientError: If the body is not valid JSON
        """
        response = self.get(path, params, headers)
        try:
            return response.json()
        except ValueError as e:
            raise HttpClientError(f"Invalid JSON from {self._url(path)}: {e}") from e
