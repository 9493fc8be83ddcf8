"""Map HTTP client failures onto the shared ``StorageIOError``.

Placement and datanode endpoints report failures as
``{"error": {"code", "message", "category", "retryable"}}``. When such a body
is present its fields win; otherwise the HTTP status drives the mapping.
"""

from __future__ import annotations

from typing import Any, Mapping

from packages.stowage_shared.errors import (
    ErrorCategory,
    ErrorDetail,
    StorageIOError,
    codes,
    dependency_error,
    not_found_error,
)

from .errors import (
    HttpClientError,
    HttpJsonDecodeError,
    HttpRequestError,
    HttpStatusError,
)


def to_storage_io_error(*, operation: str, error: HttpClientError) -> StorageIOError:
    """Translate one typed HTTP failure into a ``StorageIOError``."""
    detail = _detail_for(error)
    return StorageIOError(
        f"{operation} failed: {detail.message}",
        operation=operation,
        detail=detail,
    )


def _detail_for(error: HttpClientError) -> ErrorDetail:
    metadata = {"method": error.method, "url": error.url}

    if isinstance(error, HttpStatusError):
        remote = _remote_detail(error.response_json, metadata=metadata)
        if remote is not None:
            return remote
        metadata["status_code"] = str(error.status_code)
        if error.status_code == 404:
            return not_found_error(str(error), metadata=metadata)
        return dependency_error(
            str(error),
            code=codes.DEPENDENCY_FAILURE,
            retryable=error.retryable,
            metadata=metadata,
        )

    if isinstance(error, HttpJsonDecodeError):
        return dependency_error(
            str(error),
            code=codes.INVALID_RESPONSE,
            retryable=False,
            metadata=metadata,
        )

    if isinstance(error, HttpRequestError):
        return dependency_error(
            str(error),
            code=codes.DEPENDENCY_UNAVAILABLE,
            retryable=True,
            metadata=metadata,
        )

    return dependency_error(str(error), retryable=error.retryable, metadata=metadata)


def _remote_detail(
    body: Any, *, metadata: Mapping[str, str]
) -> ErrorDetail | None:
    """Parse the remote error envelope, or return ``None`` when absent."""
    if not isinstance(body, Mapping):
        return None
    raw = body.get("error")
    if not isinstance(raw, Mapping) or not raw.get("message"):
        return None
    return ErrorDetail(
        code=str(raw.get("code") or codes.DEPENDENCY_FAILURE),
        message=str(raw["message"]),
        category=ErrorCategory.parse(raw.get("category", ErrorCategory.DEPENDENCY.value)),
        retryable=bool(raw.get("retryable", False)),
        metadata=dict(metadata),
    )
