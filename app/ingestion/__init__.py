# Ingestion module - HTTP plumbing for external weather providers
from .http import (
    HttpClient,
    HttpClientError,
    HttpConnectionError,
    HttpStatusError,
    HttpTimeoutError,
    fetch,
    redact_params,
)

__all__ = [
    "HttpClient",
    "HttpClientError",
    "HttpConnectionError",
    "HttpStatusError",
    "HttpTimeoutError",
    "fetch",
    "redact_params",
]
