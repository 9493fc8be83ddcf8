"""Public shared HTTP API for Stowage adapters."""

from .client import TRACE_ID_HEADER, HttpClient
from .errors import (
    HttpClientError,
    HttpJsonDecodeError,
    HttpRequestError,
    HttpStatusError,
)
from .remote_errors import to_storage_io_error

__all__ = [
    "TRACE_ID_HEADER",
    "HttpClient",
    "HttpClientError",
    "HttpJsonDecodeError",
    "HttpRequestError",
    "HttpStatusError",
    "to_storage_io_error",
]
