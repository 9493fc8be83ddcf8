"""Canonical shared error types for Stowage components.

This module defines a transport-agnostic error taxonomy and shape used by the
storage adapters, the container operations service, and the CLI actor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """High-level error categories shared across component boundaries."""

    UNSPECIFIED = "unspecified"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PRECONDITION = "precondition"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"

    @classmethod
    def parse(cls, value: object) -> ErrorCategory:
        """Return the matching category, or ``UNSPECIFIED`` for unknown values."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNSPECIFIED


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error object carried by typed exceptions and CLI output."""

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)
