"""Tests for the engine error hierarchy."""

import pytest

from coderun.engine.errors import (
    CodeRunError,
    ConfigError,
    EngineError,
    HostExecutionError,
    InvalidPathError,
    UnsupportedLanguageError,
    WorkspaceNotFoundError,
)


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [InvalidPathError, UnsupportedLanguageError, HostExecutionError, WorkspaceNotFoundError],
    )
    def test_engine_errors(self, cls: type) -> None:
        assert issubclass(cls, EngineError)
        assert issubclass(cls, CodeRunError)

    def test_config_error_is_not_engine_error(self) -> None:
        assert issubclass(ConfigError, CodeRunError)
        assert not issubclass(ConfigError, EngineError)


class TestEngineError:
    def test_message_with_detail(self) -> None:
        err = HostExecutionError("docker daemon unreachable")
        assert "docker daemon unreachable" in str(err)
        assert err.detail == "docker daemon unreachable"

    def test_message_without_detail(self) -> None:
        assert str(EngineError()) == "Engine error"


class TestInvalidPathError:
    def test_attributes(self) -> None:
        err = InvalidPathError("../x", "path separator")
        assert err.name == "../x"
        assert err.reason == "path separator"
        assert "'../x'" in str(err)
        assert "path separator" in str(err)


class TestUnsupportedLanguageError:
    def test_lists_supported(self) -> None:
        err = UnsupportedLanguageError("cobol", ["python", "cpp"])
        assert err.language == "cobol"
        assert err.supported == ("cpp", "python")
        assert "cobol" in str(err)
        assert "cpp, python" in str(err)

    def test_without_supported(self) -> None:
        assert "supported" not in str(UnsupportedLanguageError("cobol"))


class TestWorkspaceNotFoundError:
    def test_attributes(self) -> None:
        err = WorkspaceNotFoundError("abc")
        assert err.workspace_id == "abc"
        assert "abc" in str(err)
