"""Public shared error API for Stowage components."""

from . import codes
from .exceptions import (
    ContainerSizeUnknownError,
    IllegalPipelineStateError,
    MissingPipelineNameError,
    PreconditionError,
    StorageIOError,
)
from .factories import (
    dependency_error,
    internal_error,
    not_found_error,
    precondition_error,
    validation_error,
)
from .normalize import exception_to_error
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "ContainerSizeUnknownError",
    "ErrorCategory",
    "ErrorDetail",
    "IllegalPipelineStateError",
    "MissingPipelineNameError",
    "PreconditionError",
    "StorageIOError",
    "codes",
    "dependency_error",
    "exception_to_error",
    "internal_error",
    "not_found_error",
    "precondition_error",
    "validation_error",
]
