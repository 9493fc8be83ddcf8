"""Shared error code constants.

Generic codes come first; the container lifecycle codes below them are used by
the placement/datanode adapters and the container operations service.
"""

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"

# Not found
NOT_FOUND = "NOT_FOUND"

# Preconditions
ILLEGAL_PIPELINE_STATE = "ILLEGAL_PIPELINE_STATE"
MISSING_PIPELINE_NAME = "MISSING_PIPELINE_NAME"

# Dependency / external system
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"
INVALID_RESPONSE = "INVALID_RESPONSE"

# Configuration
CONTAINER_SIZE_UNKNOWN = "CONTAINER_SIZE_UNKNOWN"

# Internal
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
