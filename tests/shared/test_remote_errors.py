"""Tests for mapping HTTP client failures onto ``StorageIOError``."""

from __future__ import annotations

import httpx

from packages.stowage_shared.errors import ErrorCategory, StorageIOError, codes
from packages.stowage_shared.http import (
    HttpJsonDecodeError,
    HttpRequestError,
    HttpStatusError,
    to_storage_io_error,
)


def _status_error(status_code: int, body: object = None) -> HttpStatusError:
    return HttpStatusError(
        message=f"HTTP {status_code} for GET http://scm/containers/1",
        method="GET",
        url="http://scm/containers/1",
        retryable=status_code >= 500,
        status_code=status_code,
        response_json=body,
    )


def test_remote_envelope_fields_win() -> None:
    error = to_storage_io_error(
        operation="get_container",
        error=_status_error(
            500,
            {
                "error": {
                    "code": "SCM_NOT_LEADER",
                    "message": "not the leader",
                    "category": "dependency",
                    "retryable": True,
                }
            },
        ),
    )

    assert isinstance(error, StorageIOError)
    assert str(error) == "get_container failed: not the leader"
    assert error.detail.code == "SCM_NOT_LEADER"
    assert error.detail.category == ErrorCategory.DEPENDENCY
    assert error.retryable is True
    assert error.detail.metadata["url"] == "http://scm/containers/1"


def test_unknown_remote_category_is_unspecified() -> None:
    error = to_storage_io_error(
        operation="get_container",
        error=_status_error(400, {"error": {"message": "bad", "category": "weird"}}),
    )

    assert error.detail.category == ErrorCategory.UNSPECIFIED
    assert error.detail.code == codes.DEPENDENCY_FAILURE
    assert error.retryable is False


def test_status_without_envelope_uses_status_mapping() -> None:
    missing = to_storage_io_error(operation="get_container", error=_status_error(404))
    failing = to_storage_io_error(
        operation="get_container", error=_status_error(502, {"detail": "proxy"})
    )

    assert missing.detail.category == ErrorCategory.NOT_FOUND
    assert missing.retryable is False
    assert failing.detail.code == codes.DEPENDENCY_FAILURE
    assert failing.detail.metadata["status_code"] == "502"
    assert failing.retryable is True


def test_decode_and_transport_failures() -> None:
    decode = to_storage_io_error(
        operation="read_container",
        error=HttpJsonDecodeError(
            message="Invalid JSON response", method="GET", url="http://n1/containers/1"
        ),
    )
    transport = to_storage_io_error(
        operation="read_container",
        error=HttpRequestError(
            message="HTTP request failed",
            method="GET",
            url="http://n1/containers/1",
            retryable=True,
            cause=httpx.ConnectError("refused"),
        ),
    )

    assert decode.detail.code == codes.INVALID_RESPONSE
    assert decode.retryable is False
    assert transport.detail.code == codes.DEPENDENCY_UNAVAILABLE
    assert transport.retryable is True
    assert transport.operation == "read_container"
