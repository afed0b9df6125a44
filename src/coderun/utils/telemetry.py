"""OpenTelemetry tracing helpers for coderun.

Every run is traced as one ``coderun.run`` span.  The rest of the codebase
only needs :func:`get_tracer` and the ``annotate_*`` helpers; without a
configured SDK the API hands back no-op spans and all of this is free.

To export spans, call :func:`configure_telemetry` once at startup
(requires the ``otel`` extra: ``pip install coderun[otel]``).
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from coderun.engine.languages import LanguageProfile
    from coderun.engine.models import ExecutionOutcome, RunRequest

# ---------------------------------------------------------------------------
# Span attributes and events
# ---------------------------------------------------------------------------

ATTR_RUN_ID = "coderun.run.id"
ATTR_LANGUAGE = "coderun.language"
ATTR_IMAGE = "coderun.image"
ATTR_ENTRY_FILE = "coderun.entry_file"
ATTR_TIME_LIMIT = "coderun.limits.time"
ATTR_MEMORY_MB = "coderun.limits.memory_mb"
ATTR_CPUS = "coderun.limits.cpus"
ATTR_OUTCOME = "coderun.outcome"
ATTR_EXIT_CODE = "coderun.exit_code"
ATTR_TRUNCATED = "coderun.output.truncated"
ATTR_WORKSPACE_ID = "coderun.workspace.id"
ATTR_SKIPPED_FILES = "coderun.workspace.skipped_files"

EVENT_COPY_FAILED = "workspace.copy_failed"
EVENT_CLEANUP_FAILED = "run_dir.cleanup_failed"

RUN_SPAN_NAME = "coderun.run"

_INSTRUMENTATION_NAME = "coderun"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a tracer for *name*; a no-op one until the SDK is configured."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def annotate_request(span: trace.Span, request: RunRequest, profile: LanguageProfile) -> None:
    """Record what was asked for: language, image and the clamped limits."""
    span.set_attribute(ATTR_LANGUAGE, profile.name)
    span.set_attribute(ATTR_IMAGE, profile.image)
    span.set_attribute(ATTR_TIME_LIMIT, request.time_limit)
    span.set_attribute(ATTR_MEMORY_MB, request.memory)
    span.set_attribute(ATTR_CPUS, request.cpus)
    if request.workspace_id:
        span.set_attribute(ATTR_WORKSPACE_ID, request.workspace_id)


def annotate_outcome(span: trace.Span, outcome: ExecutionOutcome) -> None:
    span.set_attribute(ATTR_OUTCOME, outcome.kind.value)
    span.set_attribute(ATTR_TRUNCATED, outcome.truncated)
    if outcome.exit_code is not None:
        span.set_attribute(ATTR_EXIT_CODE, outcome.exit_code)


def configure_telemetry(
    *,
    service_name: str = "coderun",
    export_to_console: bool = True,
    otlp_endpoint: str | None = None,
) -> Any:
    """Install a tracer provider and return it (requires ``coderun[otel]``).

    Parameters
    ----------
    service_name:
        The ``service.name`` resource attribute.
    export_to_console:
        If ``True``, print finished spans as JSON on stderr.  Stdout is
        reserved for the program's own output.
    otlp_endpoint:
        If set, export spans via OTLP/gRPC to this endpoint.

    Raises
    ------
    ImportError
        If the ``opentelemetry-sdk`` package (or, for *otlp_endpoint*, the
        OTLP exporter) is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install coderun[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if export_to_console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter(out=sys.stderr)))

    if otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    trace.set_tracer_provider(provider)
    return provider


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp is required for OTLP export. "
            "Install it with: pip install coderun[otel]"
        )
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
