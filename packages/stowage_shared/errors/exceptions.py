"""Typed exceptions raised across the container lifecycle call path.

``StorageIOError`` is the single failure type callers see for anything that
went wrong talking to the placement service or a datanode pipeline. It derives
from ``OSError`` so callers may treat it as an ordinary I/O failure.
Precondition failures are programming or consistency errors and derive from
``RuntimeError`` instead.
"""

from __future__ import annotations

from . import codes
from .factories import dependency_error, precondition_error
from .types import ErrorDetail


class StorageIOError(OSError):
    """Placement or datanode call failed, or the call could not be made."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        detail: ErrorDetail | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.detail = detail or dependency_error(message)

    @property
    def retryable(self) -> bool:
        """Return whether the remote side reported a transient failure."""
        return self.detail.retryable

    def __str__(self) -> str:
        return self.message


class ContainerSizeUnknownError(StorageIOError):
    """Container capacity was queried before it was configured."""

    def __init__(self, message: str = "container size unknown") -> None:
        super().__init__(
            message,
            operation="get_container_size",
            detail=dependency_error(
                message,
                code=codes.CONTAINER_SIZE_UNKNOWN,
                retryable=False,
            ),
        )


class PreconditionError(RuntimeError):
    """A precondition of the requested operation does not hold."""

    code = codes.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.detail = precondition_error(message, code=self.code)


class IllegalPipelineStateError(PreconditionError):
    """Pipeline is in a lifecycle state that does not accept new containers."""

    code = codes.ILLEGAL_PIPELINE_STATE


class MissingPipelineNameError(PreconditionError):
    """Pipeline has no name but must be materialized on its datanodes."""

    code = codes.MISSING_PIPELINE_NAME
