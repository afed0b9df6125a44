"""Tests for SandboxExecutor protocol conformance."""

import warnings

from coderun.engine.docker_sandbox import DockerSandbox
from coderun.engine.executor import SandboxExecutor
from coderun.engine.local_sandbox import LocalSandbox
from coderun.engine.models import ExecutionRequest, SandboxResult


class _Recorder:
    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        return SandboxResult(exit_code=0)

    async def cleanup(self) -> None:
        pass


class _NoCleanup:
    async def execute(self, request: ExecutionRequest) -> SandboxResult:
        return SandboxResult(exit_code=0)


class TestSandboxExecutorProtocol:
    def test_docker_sandbox(self) -> None:
        assert isinstance(DockerSandbox(), SandboxExecutor)

    def test_local_sandbox(self) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            assert isinstance(LocalSandbox(), SandboxExecutor)

    def test_duck_typed_backend(self) -> None:
        assert isinstance(_Recorder(), SandboxExecutor)

    def test_cleanup_is_required(self) -> None:
        assert not isinstance(_NoCleanup(), SandboxExecutor)
