"""
Semantic-Search-Service - OpenTelemetry Tracing Module

Patterns Applied:
- One-time configure_tracing() at startup
- Minimal manual instrumentation: one span per search, one per load attempt
- Failure kinds recorded as the error.type span attribute
- Trace/span ids exposed for log correlation (see core.logging)
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

SEARCH_SPAN = "semantic_search"
MODEL_LOAD_SPAN = "model_load_attempt"

# Module-level flag for one-time configuration
_configured: bool = False


def configure_tracing(
    service_name: str,
    version: str,
    console_export: bool = False,
) -> None:
    """Install the process-wide TracerProvider.

    Until this runs, get_tracer() hands out no-op tracers, so the search and
    lifecycle spans cost nothing when tracing is disabled.

    Args:
        service_name: Recorded as service.name on every span
        version: Recorded as service.version
        console_export: Print finished spans to stdout (development only)
    """
    global _configured

    if _configured:
        return

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": service_name,
                "service.version": version,
            }
        )
    )
    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _configured = True


def get_tracer(name: str) -> Any:
    return trace.get_tracer(name)


def mark_span_error(span: Any, error: BaseException) -> None:
    """Tag a span with the failure kind that ended it.

    Distinguishes e.g. ModelFilesMissingError from ModelLoadTimeoutError in
    trace views without parsing the exception message.
    """
    span.set_attribute("error.type", type(error).__name__)


def current_trace_ids() -> tuple[str, str] | None:
    """Hex trace and span ids of the active span, or None outside a span."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None
    return (
        trace.format_trace_id(context.trace_id),
        trace.format_span_id(context.span_id),
    )
