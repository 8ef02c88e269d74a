"""llmcompat: mapping-table driven protocol compatibility for LLM API gateways."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from llmcompat.compat.config import CompatibilityConfig as CompatibilityConfig
    from llmcompat.compat.module import CompatibilityModule as CompatibilityModule
    from llmcompat.core.mapping.store import MappingTableStore as MappingTableStore

_EXPORTS = {
    "CompatibilityConfig": "llmcompat.compat.config",
    "CompatibilityModule": "llmcompat.compat.module",
    "MappingTableStore": "llmcompat.core.mapping.store",
}


def __getattr__(name: str) -> object:
    module_path = _EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'llmcompat' has no attribute {name!r}")
