"""Tests for typed exceptions and exception normalization."""

from __future__ import annotations

import pytest

from packages.stowage_shared.errors import (
    ContainerSizeUnknownError,
    ErrorCategory,
    IllegalPipelineStateError,
    MissingPipelineNameError,
    PreconditionError,
    StorageIOError,
    codes,
    exception_to_error,
)


def test_storage_io_error_is_an_os_error() -> None:
    error = StorageIOError("placement unavailable", operation="allocate_container")

    assert isinstance(error, OSError)
    assert str(error) == "placement unavailable"
    assert error.operation == "allocate_container"
    assert error.detail.category == ErrorCategory.DEPENDENCY
    assert error.retryable is True


def test_container_size_unknown_is_not_retryable() -> None:
    error = ContainerSizeUnknownError()

    assert isinstance(error, StorageIOError)
    assert str(error) == "container size unknown"
    assert error.detail.code == codes.CONTAINER_SIZE_UNKNOWN
    assert error.retryable is False


@pytest.mark.parametrize(
    ("error_type", "code"),
    [
        (IllegalPipelineStateError, codes.ILLEGAL_PIPELINE_STATE),
        (MissingPipelineNameError, codes.MISSING_PIPELINE_NAME),
    ],
)
def test_precondition_errors_carry_codes(
    error_type: type[PreconditionError], code: str
) -> None:
    error = error_type("bad pipeline")

    assert isinstance(error, RuntimeError)
    assert exception_to_error(error).code == code
    assert exception_to_error(error).category == ErrorCategory.PRECONDITION
    assert exception_to_error(error).retryable is False


@pytest.mark.parametrize(
    ("exc", "category", "retryable"),
    [
        (ValueError("count must be > 0"), ErrorCategory.VALIDATION, False),
        (KeyError("missing"), ErrorCategory.NOT_FOUND, False),
        (TimeoutError(), ErrorCategory.DEPENDENCY, True),
        (ConnectionRefusedError("refused"), ErrorCategory.DEPENDENCY, True),
        (RuntimeError("boom"), ErrorCategory.INTERNAL, False),
    ],
)
def test_builtin_exceptions_normalize_by_type(
    exc: Exception, category: ErrorCategory, retryable: bool
) -> None:
    detail = exception_to_error(exc)

    assert detail.category == category
    assert detail.retryable is retryable
    assert detail.metadata["exception_type"] == type(exc).__name__


def test_error_category_parse_tolerates_unknown_values() -> None:
    assert ErrorCategory.parse(" Not_Found ") == ErrorCategory.NOT_FOUND
    assert ErrorCategory.parse("conflict") == ErrorCategory.UNSPECIFIED
    assert ErrorCategory.parse(None) == ErrorCategory.UNSPECIFIED
