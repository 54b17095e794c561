"""
Extension Manifest.

This module parses ``[[extension]]`` declarations from the TOML config file
into ``Extension`` objects, in declaration order.

Key features:
- ``owner/repo`` source shorthand expanded to a GitHub URL
- Trigger fields: cmd, keys, ft, event (string or list)
- Dependencies named by extension name or by source
- Undeclared dependencies registered implicitly as lazy extensions
- Deferred ``module:attr`` setup entry points with optional opts
- ``opts`` without ``setup`` calls the main module's ``setup(opts)``
- ``opts`` without ``setup`` calls the extension's main module ``setup(opts)``
"""

import re
from pathlib import Path
from typing import Any

from lazyext.config.toml_handler import TOMLError, read_toml
from lazyext.plugin.extension import Extension, Source
from lazyext.plugin.loader import LoaderError, deferred_setup
from lazyext.plugin.triggers import Command, FileType, KeySequence, LifecycleEvent

EXTENSION_SECTION = "extension"

DEFAULT_KEY_MODE = "n"

# mode = "" stands for every mapping mode
ALL_KEY_MODES = ("n", "v", "o")

DEFAULT_SETUP_ATTR = "setup"

GITHUB_URL = "https://github.com/{}.git"

_FIELDS = {
    "name": str,
    "source": str,
    "dependencies": (str, list),
    "cmd": (str, list),
    "event": (str, list),
    "ft": (str, list),
    "keys": (str, list),
    "setup": str,
    "opts": dict,
    "build": str,
    "branch": str,
    "tag": str,
    "commit": str,
    "lazy": bool,
}

_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_SHORTHAND = re.compile(r"^[\w.-]+/[\w.-]+$")


class ManifestError(Exception):
    """Base exception for manifest-related errors."""

    pass


class ValidationError(ManifestError):
    """Raised when a declaration is invalid."""

    pass


def source_url(source: str) -> str:
    """Expand ``owner/repo`` to a GitHub URL; other sources pass through."""
    if _SHORTHAND.match(source):
        return GITHUB_URL.format(source)
    return source


def name_from_source(source: str) -> str:
    """``folke/trouble.nvim`` -> ``trouble.nvim``; a trailing ``.git`` is dropped."""
    name = source.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


def default_module(name: str) -> str:
    """Main module of an extension: ``trouble.nvim`` -> ``trouble``, ``nvim-cmp`` -> ``cmp``."""
    module = re.sub(r"^nvim-|[.-]nvim$|\.lua$", "", name)
    return re.sub(r"\W", "_", module)


def _dependency_name(dep: str, sources: dict[str, str]) -> str:
    """Resolve a dependency given by name or by source to an extension name."""
    if "/" not in dep:
        return dep
    return sources.get(source_url(dep), name_from_source(dep))


def _as_list(value: str | list, field_name: str) -> list:
    items = [value] if isinstance(value, str) else value
    for item in items:
        if field_name != "keys" and not isinstance(item, str):
            raise ValidationError(f"'{field_name}' entries must be strings: {item!r}")
    return items


def validate_declaration(data: dict[str, Any]) -> None:
    """
    Validate one ``[[extension]]`` table.

    Raises:
        ValidationError: If the table is invalid
    """
    for key, value in data.items():
        if key not in _FIELDS:
            raise ValidationError(f"Unknown extension field: {key}")
        if not isinstance(value, _FIELDS[key]):
            raise ValidationError(f"Invalid type for '{key}': {type(value).__name__}")

    if "name" not in data and "source" not in data:
        raise ValidationError("Extension needs a 'name' or a 'source'")

    name = data.get("name") or name_from_source(data["source"])
    if not _NAME.match(name):
        raise ValidationError(f"Invalid extension name: {name}")

    if "tag" in data and "commit" in data:
        raise ValidationError(f"Extension {name}: use either 'tag' or 'commit'")

    if data.get("build", "").startswith(":"):
        raise ValidationError(
            f"Extension {name}: build {data['build']!r} is an editor command; "
            f"'build' must be a shell command"
        )


def parse_keys(value: str | list) -> list[KeySequence]:
    """
    Parse the ``keys`` field.

    Entries are either a key string (normal mode) or a table with ``lhs``,
    optional ``mode`` (string or list; ``""`` means all of ``ALL_KEY_MODES``)
    and optional ``desc``.

    Raises:
        ValidationError: If an entry is malformed
    """
    triggers = []
    for entry in _as_list(value, "keys"):
        if isinstance(entry, str):
            triggers.append(KeySequence(DEFAULT_KEY_MODE, entry))
            continue
        if not isinstance(entry, dict) or not isinstance(entry.get("lhs"), str):
            raise ValidationError(f"Key entry needs an 'lhs' string: {entry!r}")

        modes = entry.get("mode", DEFAULT_KEY_MODE)
        modes = [modes] if isinstance(modes, str) else modes
        desc = entry.get("desc", "")
        expanded: list[str] = []
        for mode in modes:
            if not isinstance(mode, str):
                raise ValidationError(f"Key mode must be a string: {mode!r}")
            for m in ALL_KEY_MODES if mode == "" else (mode,):
                if m not in expanded:
                    expanded.append(m)
        triggers.extend(KeySequence(mode, entry["lhs"], desc) for mode in expanded)
    return triggers


def parse_triggers(data: dict[str, Any]) -> list:
    """Collect trigger descriptors from cmd, keys, ft and event."""
    triggers: list = []
    triggers.extend(Command(c) for c in _as_list(data.get("cmd", []), "cmd"))
    if "keys" in data:
        triggers.extend(parse_keys(data["keys"]))
    triggers.extend(FileType(p) for p in _as_list(data.get("ft", []), "ft"))
    triggers.extend(LifecycleEvent(e) for e in _as_list(data.get("event", []), "event"))
    return triggers


def parse_declaration(
    data: dict[str, Any],
    install_root: Path,
    base_dir: Path,
    sources: dict[str, str] | None = None,
) -> Extension:
    """
    Build an Extension from one declaration table.

    Args:
        data: The ``[[extension]]`` table
        install_root: Where git sources are checked out
        base_dir: Directory for entry points of source-less extensions
        sources: Declared source URL -> extension name, used to resolve
            dependencies given as sources

    Raises:
        ValidationError: If the declaration is invalid
    """
    validate_declaration(data)
    sources = sources or {}

    source = None
    if "source" in data:
        source = Source(
            url=source_url(data["source"]),
            branch=data.get("branch"),
            tag=data.get("tag"),
            commit=data.get("commit"),
        )
    name = data.get("name") or name_from_source(data["source"])

    kwargs: dict[str, Any] = {}
    if "setup" in data or "opts" in data:
        entry_point = data.get("setup") or f"{default_module(name)}:{DEFAULT_SETUP_ATTR}"
        entry_dir = install_root / name if source else base_dir
        try:
            kwargs["setup"] = deferred_setup(entry_point, data.get("opts"), entry_dir)
        except LoaderError as e:
            raise ValidationError(f"Extension {name}: {e}") from e

    dependencies = [
        _dependency_name(dep, sources)
        for dep in _as_list(data.get("dependencies", []), "dependencies")
    ]

    return Extension(
        name=name,
        triggers=tuple(parse_triggers(data)),
        dependencies=tuple(dependencies),
        source=source,
        build=data.get("build"),
        lazy=data.get("lazy", False),
        **kwargs,
    )


def parse_declarations(
    tables: list[dict[str, Any]], install_root: Path, base_dir: Path
) -> list[Extension]:
    """
    Parse all declarations, adding implicit lazy extensions for undeclared
    dependencies (in first-reference order, after the declared ones).

    Raises:
        ValidationError: If any declaration is invalid
    """
    sources: dict[str, str] = {}
    for position, data in enumerate(tables):
        if not isinstance(data, dict):
            raise ValidationError(f"Extension #{position + 1} is not a table")
        validate_declaration(data)
        if "source" in data:
            url = source_url(data["source"])
            sources.setdefault(url, data.get("name") or name_from_source(data["source"]))

    extensions = [
        parse_declaration(data, install_root, base_dir, sources) for data in tables
    ]

    known = {ext.name for ext in extensions}
    for data in tables:
        for dep in _as_list(data.get("dependencies", []), "dependencies"):
            name = _dependency_name(dep, sources)
            if name in known:
                continue
            source = Source(url=source_url(dep)) if "/" in dep else None
            extensions.append(Extension(name=name, source=source, lazy=True))
            known.add(name)

    return extensions


def load_manifest(config_file: Path, install_root: Path) -> list[Extension]:
    """
    Read the ``[[extension]]`` declarations of a config file.

    Raises:
        ManifestError: If the file cannot be read
        ValidationError: If a declaration is invalid
    """
    try:
        data = read_toml(config_file)
    except TOMLError as e:
        raise ManifestError(str(e)) from e

    tables = data.get(EXTENSION_SECTION, [])
    if not isinstance(tables, list):
        raise ValidationError(f"'{EXTENSION_SECTION}' must be an array of tables")

    return parse_declarations(tables, install_root, config_file.parent)
