"""Tests for OpenTelemetry tracing helpers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from opentelemetry import trace

from coderun.engine.engine import RunEngine
from coderun.engine.errors import HostExecutionError
from coderun.engine.models import ExecutionRequest, RunRequest, SandboxResult
from coderun.engine.rundir import RunDirectoryBuilder
from coderun.utils.telemetry import (
    ATTR_ENTRY_FILE,
    ATTR_EXIT_CODE,
    ATTR_LANGUAGE,
    ATTR_OUTCOME,
    ATTR_RUN_ID,
    ATTR_SKIPPED_FILES,
    ATTR_TIME_LIMIT,
    ATTR_WORKSPACE_ID,
    EVENT_COPY_FAILED,
    RUN_SPAN_NAME,
    _INSTRUMENTATION_NAME,
    configure_telemetry,
    get_tracer,
)
from coderun.workspace.store import FileWorkspaceStore


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        assert isinstance(get_tracer("test.module"), trace.Tracer)

    def test_default_name(self) -> None:
        assert isinstance(get_tracer(), trace.Tracer)
        assert _INSTRUMENTATION_NAME == "coderun"

    def test_noop_span(self) -> None:
        """Without SDK configured, spans should be no-ops."""
        with get_tracer("test.noop").start_as_current_span("test") as span:
            span.set_attribute(ATTR_LANGUAGE, "python")


class TestConfigureTelemetry:
    def test_raises_without_sdk(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ImportError, match="opentelemetry-sdk"):
                configure_telemetry()

    def test_otlp_raises_without_exporter(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

        with patch.dict(
            "sys.modules",
            {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None},
        ):
            with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(export_to_console=False, otlp_endpoint="http://localhost:4317")

    def test_returns_provider(self) -> None:
        sdk_trace = pytest.importorskip("opentelemetry.sdk.trace")

        with patch("coderun.utils.telemetry.trace.set_tracer_provider") as set_provider:
            provider = configure_telemetry(service_name="test-svc")

        assert isinstance(provider, sdk_trace.TracerProvider)
        set_provider.assert_called_once_with(provider)
        assert provider.resource.attributes["service.name"] == "test-svc"


class _StubSandbox:
    def __init__(self, result: SandboxResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error

    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        if self.error is not None:
            raise self.error
        assert self.result is not None
        return self.result

    async def cleanup(self) -> None:
        pass


class _FlakyStore(FileWorkspaceStore):
    def read(self, workspace_id: str, filename: str) -> str:
        if filename == "main.cpp":
            raise OSError("disk hiccup")
        return super().read(workspace_id, filename)


@pytest.fixture()
def exporter():
    sdk_trace = pytest.importorskip("opentelemetry.sdk.trace")
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    memory = InMemorySpanExporter()
    provider = sdk_trace.TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(memory))
    with patch("coderun.engine.engine._tracer", provider.get_tracer("test")):
        yield memory


class TestRunSpan:
    async def test_normal_run_attributes(self, tmp_path: Path, exporter) -> None:
        store = FileWorkspaceStore(tmp_path / "ws")
        engine = RunEngine(_StubSandbox(SandboxResult(exit_code=0)), RunDirectoryBuilder(tmp_path / "runs", store))

        outcome = await engine.run(RunRequest(language="python", time_limit=2))

        (span,) = exporter.get_finished_spans()
        assert span.name == RUN_SPAN_NAME
        assert span.attributes[ATTR_LANGUAGE] == "python"
        assert span.attributes[ATTR_TIME_LIMIT] == 2.0
        assert span.attributes[ATTR_RUN_ID] == outcome.run_id
        assert span.attributes[ATTR_ENTRY_FILE] == "main.py"
        assert span.attributes[ATTR_OUTCOME] == "normal"
        assert span.attributes[ATTR_EXIT_CODE] == 0

    async def test_host_error_has_no_exit_code(self, tmp_path: Path, exporter) -> None:
        store = FileWorkspaceStore(tmp_path / "ws")
        sandbox = _StubSandbox(error=HostExecutionError("no daemon"))
        engine = RunEngine(sandbox, RunDirectoryBuilder(tmp_path / "runs", store))

        await engine.run(RunRequest(language="python"))

        (span,) = exporter.get_finished_spans()
        assert span.attributes[ATTR_OUTCOME] == "host_error"
        assert ATTR_EXIT_CODE not in span.attributes

    async def test_copy_failures_become_events(self, tmp_path: Path, exporter) -> None:
        store = _FlakyStore(tmp_path / "ws")
        ws = store.create()
        engine = RunEngine(_StubSandbox(SandboxResult(exit_code=0)), RunDirectoryBuilder(tmp_path / "runs", store))

        await engine.run(RunRequest(language="python", workspace_id=ws))

        (span,) = exporter.get_finished_spans()
        assert span.attributes[ATTR_WORKSPACE_ID] == ws
        assert span.attributes[ATTR_SKIPPED_FILES] == 1
        events = [e for e in span.events if e.name == EVENT_COPY_FAILED]
        assert [e.attributes["filename"] for e in events] == ["main.cpp"]
