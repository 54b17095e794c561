"""
lazyext Configuration - TOML-based settings.

The configuration file holds a ``[settings]`` table (validated against
``SETTINGS_SCHEMA``) next to the ``[[extension]]`` declarations read by
``lazyext.plugin.manifest``.

Example usage:
    from lazyext.config import load_settings

    settings = load_settings(Path("lazyext.toml"))
    print(settings.install_root)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lazyext.config.schema import (
    ConfigField,
    ValidationError,
    generate_default_config,
    validate_config,
)
from lazyext.config.toml_handler import TOMLError, generate_toml_from_schema, read_toml

DEFAULT_CONFIG_FILE = Path("lazyext.toml")

SETTINGS_SECTION = "settings"


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


def field(
    type_: type,
    default: Any,
    description: str = "",
    min: Any = None,
    max: Any = None,
    choices: list[Any] | None = None,
    item_type: type | None = None,
) -> ConfigField:
    """
    Helper function to create a ConfigField.

    Example:
        field(int, 60, "Build timeout in seconds", min=1, max=3600)
    """
    return ConfigField(
        type_=type_,
        default=default,
        description=description,
        min=min,
        max=max,
        choices=choices,
        item_type=item_type,
    )


SETTINGS_SCHEMA: dict[str, ConfigField] = {
    "install_root": field(
        str, "~/.local/share/lazyext", "Directory holding one checkout per extension", min=1
    ),
    "git_filter": field(str, "blob:none", "Partial clone filter ('' for full clones)"),
    "default_branch": field(
        str, "", "Branch cloned when an extension names none ('' = remote default)"
    ),
    "build_timeout": field(int, 60, "Build step timeout in seconds", min=1, max=3600),
    "startup_events": field(
        list,
        ["VeryLazy"],
        "Lifecycle events fired once eager extensions are active",
        item_type=str,
    ),
    "lockfile": field(
        str, "lazyext-lock.toml", "Lock file name, relative to install_root", min=1
    ),
    "log_level": field(
        str, "INFO", "Log level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    ),
}


@dataclass(frozen=True)
class Settings:
    """Validated engine settings."""

    install_root: Path
    git_filter: str
    default_branch: str
    build_timeout: int
    startup_events: tuple[str, ...]
    lockfile: Path
    log_level: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """
        Build settings from a (partial) ``[settings]`` table.

        Raises:
            ConfigError: If the table fails validation
        """
        try:
            validate_config(data, SETTINGS_SCHEMA)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

        values = generate_default_config(SETTINGS_SCHEMA)
        values.update(data)

        install_root = Path(values["install_root"]).expanduser()
        return cls(
            install_root=install_root,
            git_filter=values["git_filter"],
            default_branch=values["default_branch"],
            build_timeout=values["build_timeout"],
            startup_events=tuple(values["startup_events"]),
            lockfile=install_root / values["lockfile"],
            log_level=values["log_level"],
        )


def load_settings(config_file: Path = DEFAULT_CONFIG_FILE) -> Settings:
    """
    Load settings from a config file; a missing file yields the defaults.

    Raises:
        ConfigError: If the file cannot be parsed or the settings are invalid
    """
    if not config_file.exists():
        return Settings.from_dict({})

    try:
        data = read_toml(config_file)
    except TOMLError as e:
        raise ConfigError(str(e)) from e

    section = data.get(SETTINGS_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigError(f"'{SETTINGS_SECTION}' must be a table")
    return Settings.from_dict(section)


def write_default_settings(config_file: Path = DEFAULT_CONFIG_FILE) -> None:
    """
    Write a commented ``[settings]`` table with default values.

    Raises:
        ConfigError: If the file already exists or cannot be written
    """
    if config_file.exists():
        raise ConfigError(f"Config file already exists: {config_file}")

    content = generate_toml_from_schema(
        SETTINGS_SECTION, SETTINGS_SCHEMA, generate_default_config(SETTINGS_SCHEMA)
    )
    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        config_file.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to write config file {config_file}: {e}") from e


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_FILE",
    "SETTINGS_SCHEMA",
    "Settings",
    "field",
    "load_settings",
    "write_default_settings",
]
