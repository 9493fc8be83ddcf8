"""Canonical logging field names for cross-component consistency.

These constants define a stable key set for structured logs, span attributes,
and metric attributes so adapters and services cannot drift apart.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Correlation.
TRACE_ID = "trace_id"

# Container lifecycle references.
CONTAINER_ID = "container_id"
PIPELINE = "pipeline"
LEADER = "leader"
MEMBERS = "members"
OWNER = "owner"
FORCE = "force"
STAGE_SUBJECT = "stage_subject"
STAGE_OPERATION = "stage_operation"
STAGE_PHASE = "stage_phase"
REF_COUNT = "ref_count"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT = "public_api_instrumentation_failure"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
OUTCOME = "outcome"
ERROR_CATEGORY = "error_category"
STAGE = "stage"
CONCERN = "concern"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
