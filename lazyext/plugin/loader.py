"""
Setup Entry Point Loader.

Turns a declared entry point into a zero-argument setup callback. Nothing is
imported until the callback runs, so an extension's code is only loaded when
the extension activates.

Entry point forms:
- ``package.module:attr`` imported with importlib; the base directory is
  added to the import path first
- ``relative/file.py:attr`` loaded from a file under a base directory
  (e.g. the extension's checkout)
"""

import importlib
import importlib.util
import re
import sys
from collections.abc import Callable
from pathlib import Path
from types import ModuleType
from typing import Any


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


_ENTRY_POINT = re.compile(r"^(?P<module>[^:]+):(?P<attr>[A-Za-z_][\w.]*)$")

# File-loaded modules: module name -> module
_module_cache: dict[str, ModuleType] = {}

# Directories added to sys.path for importable entry points
_search_paths: list[str] = []


def parse_entry_point(entry_point: str) -> tuple[str, str]:
    """
    Split ``module:attr``.

    Raises:
        LoaderError: If the string is not an entry point
    """
    match = _ENTRY_POINT.match(entry_point.strip())
    if not match:
        raise LoaderError(
            f"Invalid entry point: {entry_point!r}. Expected 'module:attr'"
        )
    return match.group("module"), match.group("attr")


def load_file_module(path: Path, module_name: str) -> ModuleType:
    """
    Load a module from a file, caching it under module_name.

    Raises:
        LoaderError: If loading fails
    """
    if module_name in _module_cache:
        return _module_cache[module_name]

    if not path.is_file():
        raise LoaderError(f"Entry point not found: {path}")

    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise LoaderError(f"Failed to create module spec for {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[module_name]
        raise LoaderError(f"Failed to load module {path}: {e}") from e

    _module_cache[module_name] = module
    return module


def _add_search_path(directory: Path) -> None:
    path = str(directory)
    if path not in sys.path:
        sys.path.append(path)
        _search_paths.append(path)


def resolve_entry_point(entry_point: str, base_dir: Path | None = None) -> Callable:
    """
    Import an entry point and return the callable it names.

    Raises:
        LoaderError: If the module or attribute cannot be loaded
    """
    module_part, attr_path = parse_entry_point(entry_point)

    if module_part.endswith(".py"):
        path = Path(module_part)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        stem = re.sub(r"\W", "_", str(path.with_suffix("")))
        module = load_file_module(path, f"lazyext_entry_{stem}")
    else:
        if base_dir is not None and base_dir.is_dir():
            _add_search_path(base_dir)
        try:
            module = importlib.import_module(module_part)
        except ImportError as e:
            raise LoaderError(f"Failed to import {module_part}: {e}") from e

    target: Any = module
    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise LoaderError(f"{module_part} has no attribute {attr_path}") from e

    if not callable(target):
        raise LoaderError(f"Entry point {entry_point} is not callable")
    return target


def deferred_setup(
    entry_point: str,
    opts: dict[str, Any] | None = None,
    base_dir: Path | None = None,
) -> Callable[[], Any]:
    """
    Build a setup callback that imports the entry point when called.

    Args:
        entry_point: ``module:attr`` or ``file.py:attr``
        opts: If given, passed to the entry point as its only argument
        base_dir: Directory file entry points are resolved against and
            importable entry points are searched in

    Raises:
        LoaderError: Immediately if the entry point string is malformed
    """
    parse_entry_point(entry_point)

    def setup() -> Any:
        func = resolve_entry_point(entry_point, base_dir)
        if opts is None:
            return func()
        return func(opts)

    setup.__qualname__ = f"deferred_setup[{entry_point}]"
    return setup


def clear_cache() -> None:
    """Forget all file-loaded modules and added import paths."""
    for module_name in list(_module_cache):
        del _module_cache[module_name]
        sys.modules.pop(module_name, None)
    while _search_paths:
        path = _search_paths.pop()
        if path in sys.path:
            sys.path.remove(path)
