"""lxm subcommands."""

from pathlib import Path

from lazyext.config import Settings, load_settings
from lazyext.plugin.manifest import load_manifest
from lazyext.plugin.registry import Registry


def load_registry(config_file: Path) -> tuple[Settings, Registry]:
    """
    Read settings and declarations and build a sealed registry.

    Raises:
        ConfigError, ManifestError, ExtensionError: On invalid input
    """
    settings = load_settings(config_file)
    registry = Registry()
    for extension in load_manifest(config_file, settings.install_root):
        registry.register(extension)
    registry.seal()
    return settings, registry
