"""Synchronous shared HTTP client wrapper over httpx.

All Stowage remote calls are blocking request/response, so only a synchronous
client is provided. Transport failures and error statuses are mapped to the
typed errors in ``errors.py``; callers never see raw ``httpx`` exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from .errors import HttpJsonDecodeError, HttpRequestError, HttpStatusError

TRACE_ID_HEADER = "X-Trace-Id"


def _response_text(response: httpx.Response) -> str:
    """Return response text without raising secondary decode errors."""
    try:
        return response.text
    except Exception:  # noqa: BLE001
        return ""


def _response_json(response: httpx.Response) -> Any:
    """Return decoded JSON body of an error response, or ``None``."""
    try:
        return response.json()
    except ValueError:
        return None


def _status_error(response: httpx.Response) -> HttpStatusError:
    """Build a typed status error from one HTTP response."""
    status_code = response.status_code
    return HttpStatusError(
        message=f"HTTP {status_code} for {response.request.method} {response.request.url}",
        method=response.request.method,
        url=str(response.request.url),
        retryable=status_code >= 500 or status_code == 429,
        status_code=status_code,
        response_body=_response_text(response),
        response_json=_response_json(response),
        response_headers=dict(response.headers.items()),
    )


class HttpClient:
    """Thin synchronous wrapper over ``httpx.Client``."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout_seconds: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=dict(headers or {}),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    def close(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def request(
        self,
        method: str,
        url: str,
        *,
        trace_id: str | None = None,
        raise_for_status: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one request and map transport/status failures to typed errors.

        When ``trace_id`` is given it is sent as the ``X-Trace-Id`` header.
        """
        if trace_id is not None:
            headers = dict(kwargs.get("headers") or {})
            headers[TRACE_ID_HEADER] = trace_id
            kwargs["headers"] = headers
        try:
            response = self._client.request(method=method, url=url, **kwargs)
        except httpx.RequestError as exc:
            request = exc.request if _has_request(exc) else None
            request_url = str(request.url) if request is not None else url
            request_method = request.method if request is not None else method.upper()
            raise HttpRequestError(
                message=f"HTTP request failed for {request_method} {request_url}: {exc}",
                method=request_method,
                url=request_url,
                retryable=True,
                cause=exc,
            ) from exc

        if raise_for_status and response.is_error:
            raise _status_error(response)
        return response

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Issue one request and decode JSON from a successful response.

        An empty body decodes to ``None``.
        """
        response = self.request(method, url, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise HttpJsonDecodeError(
                message=f"Invalid JSON response for {response.request.method} {response.request.url}",
                method=response.request.method,
                url=str(response.request.url),
                retryable=False,
                status_code=response.status_code,
                response_body=_response_text(response),
                cause=exc,
            ) from exc

    def get_json(self, url: str, **kwargs: Any) -> Any:
        """Issue one GET request and decode JSON."""
        return self.request_json("GET", url, **kwargs)

    def post_json(self, url: str, *, json: Any = None, **kwargs: Any) -> Any:
        """Issue one POST request with a JSON body and decode JSON response."""
        return self.request_json("POST", url, json=json, **kwargs)

    def put_json(self, url: str, *, json: Any = None, **kwargs: Any) -> Any:
        """Issue one PUT request with an optional JSON body and decode JSON response."""
        return self.request_json("PUT", url, json=json, **kwargs)

    def delete_json(self, url: str, **kwargs: Any) -> Any:
        """Issue one DELETE request and decode JSON response."""
        return self.request_json("DELETE", url, **kwargs)


def _has_request(exc: httpx.RequestError) -> bool:
    """Return whether ``exc.request`` is populated; httpx raises otherwise."""
    try:
        exc.request
    except RuntimeError:
        return False
    return True
