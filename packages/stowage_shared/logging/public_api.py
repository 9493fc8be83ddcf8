"""Composable instrumentation helpers for public API methods.

One decorator, ``public_api_instrumented``, wraps each public service method and
dispatches invocation/completion events to a set of concerns: structured
logging, OpenTelemetry tracing, and OpenTelemetry metrics. Concern failures are
isolated so instrumentation can never change the outcome of the wrapped call.
"""

from __future__ import annotations

import inspect
from contextvars import ContextVar
from dataclasses import dataclass
from functools import lru_cache, wraps
from time import perf_counter
from typing import TYPE_CHECKING, Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace import Status, StatusCode

from packages.stowage_shared.errors import exception_to_error

from . import fields
from .context import log_context

if TYPE_CHECKING:
    from packages.stowage_shared.config import PublicApiOtelSettings


@dataclass(frozen=True)
class InvocationContext:
    """Structured metadata describing one public API invocation."""

    component_id: str
    api_name: str
    references: Mapping[str, str]


@dataclass(frozen=True)
class CompletionContext:
    """Structured metadata describing one completed public API invocation."""

    invocation: InvocationContext
    success: bool
    duration_ms: float
    errors: list[str]
    error_categories: list[str]


class PublicApiInstrumentationConcern(Protocol):
    """Hook contract for one public API instrumentation concern."""

    def on_invocation(self, context: InvocationContext) -> None:
        """Handle invocation-start event for one method call."""

    def on_completion(self, context: CompletionContext) -> None:
        """Handle completion event for one method call."""


class PublicApiLoggingConcern:
    """Logging concern implementation for invocation/completion events."""

    def __init__(self, *, logger: Any) -> None:
        self._logger = logger

    def on_invocation(self, context: InvocationContext) -> None:
        """Emit standardized structured invocation-start log."""
        with log_context(_invocation_log_context(context)):
            self._logger.debug("Public API invocation")

    def on_completion(self, context: CompletionContext) -> None:
        """Emit standardized structured completion log."""
        payload = _invocation_log_context(context.invocation)
        payload.update(
            {
                fields.EVENT: fields.PUBLIC_API_COMPLETION_EVENT,
                fields.SUCCESS: context.success,
                fields.DURATION_MS: context.duration_ms,
                fields.ERRORS: context.errors or None,
            }
        )
        with log_context(payload):
            if context.success:
                self._logger.info("Public API completion")
            else:
                self._logger.warning("Public API completion")


class _CounterLike(Protocol):
    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None: ...


class _HistogramLike(Protocol):
    def record(self, amount: float, attributes: Mapping[str, str]) -> None: ...


class PublicApiTracingConcern:
    """Tracing concern that opens one span per public API invocation."""

    def __init__(self, *, tracer: otel_trace.Tracer) -> None:
        self._tracer = tracer
        self._active_spans: ContextVar[tuple[tuple[Any, Any], ...]] = ContextVar(
            "stowage_public_api_spans", default=()
        )

    def on_invocation(self, context: InvocationContext) -> None:
        """Start one span for the current invocation and attach references."""
        manager = self._tracer.start_as_current_span(
            f"public_api.{context.component_id}.{context.api_name}"
        )
        span = manager.__enter__()
        span.set_attribute(fields.COMPONENT_ID, context.component_id)
        span.set_attribute(fields.API_NAME, context.api_name)
        for key, value in context.references.items():
            span.set_attribute(f"reference.{key}", value)
        self._active_spans.set((*self._active_spans.get(), (manager, span)))

    def on_completion(self, context: CompletionContext) -> None:
        """Finalize the innermost open span with completion metadata."""
        active = self._active_spans.get()
        if not active:
            return
        manager, span = active[-1]
        self._active_spans.set(active[:-1])

        span.set_attribute(fields.SUCCESS, context.success)
        span.set_attribute(fields.DURATION_MS, context.duration_ms)
        span.set_attribute(fields.OUTCOME, _outcome(context.success))
        if not context.success:
            span.set_status(Status(StatusCode.ERROR, "; ".join(context.errors[:3])))
        manager.__exit__(None, None, None)


class PublicApiMetricsConcern:
    """Metrics concern recording call counts, latency, and error categories."""

    def __init__(
        self,
        *,
        calls_total: _CounterLike,
        duration_ms: _HistogramLike,
        errors_total: _CounterLike,
    ) -> None:
        self._calls_total = calls_total
        self._duration_ms = duration_ms
        self._errors_total = errors_total

    def on_invocation(self, context: InvocationContext) -> None:
        """No-op at invocation; metrics are emitted on completion."""
        del context

    def on_completion(self, context: CompletionContext) -> None:
        """Emit counters/histograms for one completed invocation."""
        attrs = {
            fields.COMPONENT_ID: context.invocation.component_id,
            fields.API_NAME: context.invocation.api_name,
            fields.OUTCOME: _outcome(context.success),
        }
        self._calls_total.add(1, attributes=attrs)
        self._duration_ms.record(context.duration_ms, attributes=attrs)
        if context.success:
            return
        for category in context.error_categories or ["unspecified"]:
            self._errors_total.add(
                1,
                attributes={
                    fields.COMPONENT_ID: context.invocation.component_id,
                    fields.API_NAME: context.invocation.api_name,
                    fields.ERROR_CATEGORY: category,
                },
            )


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    concerns: Sequence[PublicApiInstrumentationConcern] | None = None,
    logger: Any | None = None,
    telemetry: bool = True,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate one public API method with composable instrumentation concerns.

    ``id_fields`` names call arguments (positional or keyword) whose values are
    attached to logs and spans as references. Exceptions raised by the wrapped
    method are reported as failed completions and then re-raised unchanged.
    """
    resolved: tuple[PublicApiInstrumentationConcern, ...] = tuple(concerns or ())
    if logger is not None:
        resolved = (PublicApiLoggingConcern(logger=logger), *resolved)
    if telemetry:
        resolved = (*resolved, *_default_otel_concerns())
    if len(resolved) == 0:
        raise ValueError("public_api_instrumented requires at least one concern")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        method_name = api_name or func.__name__
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = InvocationContext(
                component_id=component_id,
                api_name=method_name,
                references=_references(signature, id_fields, args, kwargs),
            )
            _emit(resolved, "invocation", invocation, invocation, logger)

            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                detail = exception_to_error(exc)
                completion = CompletionContext(
                    invocation=invocation,
                    success=False,
                    duration_ms=_elapsed_ms(started),
                    errors=[f"{type(exc).__name__}: {exc}"],
                    error_categories=[detail.category.value],
                )
                _emit(resolved, "completion", completion, invocation, logger)
                raise

            completion = CompletionContext(
                invocation=invocation,
                success=True,
                duration_ms=_elapsed_ms(started),
                errors=[],
                error_categories=[],
            )
            _emit(resolved, "completion", completion, invocation, logger)
            return result

        return wrapper

    return decorator


def _references(
    signature: inspect.Signature,
    id_fields: tuple[str, ...],
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any],
) -> dict[str, str]:
    """Resolve selected call arguments into string reference values."""
    if not id_fields:
        return {}
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {
        name: str(bound.arguments[name])
        for name in id_fields
        if bound.arguments.get(name) not in (None, "")
    }


def _emit(
    concerns: Sequence[PublicApiInstrumentationConcern],
    stage: str,
    context: InvocationContext | CompletionContext,
    invocation: InvocationContext,
    logger: Any | None,
) -> None:
    """Dispatch one event to every concern with failure isolation."""
    for concern in concerns:
        try:
            if stage == "invocation":
                concern.on_invocation(context)  # type: ignore[arg-type]
            else:
                concern.on_completion(context)  # type: ignore[arg-type]
        except Exception as exc:  # noqa: BLE001
            _log_concern_failure(
                logger=logger,
                stage=stage,
                concern=type(concern).__name__,
                exc=exc,
                invocation=invocation,
            )


def _log_concern_failure(
    *,
    logger: Any | None,
    stage: str,
    concern: str,
    exc: Exception,
    invocation: InvocationContext,
) -> None:
    """Best-effort warning log for instrumentation concern hook failures."""
    if logger is None:
        return
    with log_context(
        {
            fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
            fields.COMPONENT_ID: invocation.component_id,
            fields.API_NAME: invocation.api_name,
            fields.STAGE: stage,
            fields.CONCERN: concern,
            fields.ERRORS: f"{type(exc).__name__}: {exc}",
        }
    ):
        logger.warning("Public API instrumentation concern failed")


def _invocation_log_context(context: InvocationContext) -> dict[str, object]:
    """Build common structured fields for one invocation event."""
    return {
        fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
        fields.COMPONENT_ID: context.component_id,
        fields.API_NAME: context.api_name,
        **context.references,
    }


def _outcome(success: bool) -> str:
    return "success" if success else "failure"


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


@lru_cache(maxsize=1)
def _default_otel_concerns() -> tuple[PublicApiInstrumentationConcern, ...]:
    """Build OTel-backed tracing and metrics concerns from configured names.

    Without an installed OTel SDK the API package hands out no-op tracers and
    meters, so these concerns are always safe to attach.
    """
    names = _public_api_otel_names()
    meter = otel_metrics.get_meter(names.meter_name)
    return (
        PublicApiTracingConcern(tracer=otel_trace.get_tracer(names.tracer_name)),
        PublicApiMetricsConcern(
            calls_total=meter.create_counter(
                name=names.metric_calls_total,
                description="Count of public API invocations by method and outcome.",
                unit="1",
            ),
            duration_ms=meter.create_histogram(
                name=names.metric_duration_ms,
                description="Public API invocation latency in milliseconds.",
                unit="ms",
            ),
            errors_total=meter.create_counter(
                name=names.metric_errors_total,
                description="Count of public API failures by error category.",
                unit="1",
            ),
        ),
    )


@lru_cache(maxsize=1)
def _public_api_otel_names() -> PublicApiOtelSettings:
    """Resolve OTel names from the loaded ``observability.otel`` settings."""
    from packages.stowage_shared.config import load_settings

    return load_settings().observability.otel
