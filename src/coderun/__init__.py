"""coderun — run untrusted programs in isolated, resource-bounded sandboxes."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from coderun.engine.engine import RunEngine as RunEngine
    from coderun.engine.models import ExecutionOutcome as ExecutionOutcome
    from coderun.engine.models import RunRequest as RunRequest

_ENGINE_EXPORTS = {
    "RunEngine": "coderun.engine.engine",
    "RunRequest": "coderun.engine.models",
    "ExecutionOutcome": "coderun.engine.models",
}


def __getattr__(name: str) -> object:
    module_path = _ENGINE_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'coderun' has no attribute {name!r}")
