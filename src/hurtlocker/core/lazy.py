"""Lazy re-exports for package ``__init__`` modules.

Importing ``hurtlocker`` should not pull in psutil, aiofiles or asyncio until
a lock is actually used, so public names are resolved on first access.
"""

from __future__ import annotations

import importlib
import sys
from collections.abc import Callable, Mapping


def make_getattr(module_name: str, exports: Mapping[str, str]) -> Callable[[str], object]:
    """
    Create a module-level __getattr__ for the given exports.

    Args:
        module_name: Name of the module installing the hook.
        exports: Mapping of exported name -> module path that defines it.

    Resolved values are stored on the module, so each name is looked up once.
    """
    export_map = dict(exports)

    def __getattr__(name: str) -> object:
        target = export_map.get(name)
        if target is None:
            raise AttributeError(f"module {module_name!r} has no attribute {name!r}")
        value = getattr(importlib.import_module(target), name)
        setattr(sys.modules[module_name], name, value)
        return value

    return __getattr__
