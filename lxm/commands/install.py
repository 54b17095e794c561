"""
lxm install command (-S).

Install declared extensions without setting them up.
"""

import sys
from typing import Any

from lazyext.plugin.extension import InstallError
from lazyext.plugin.installer import GitInstaller
from lxm.commands import load_registry


def install_command(args: Any) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    settings, registry = load_registry(args.config)
    installer = GitInstaller.from_settings(settings)

    targets = args.targets or registry.names()
    extensions = [registry.get(name) for name in targets]

    success_count = 0
    fail_count = 0
    for extension in extensions:
        if extension.source is None:
            continue
        if installer.is_installed(extension):
            if args.verbose:
                print(f"{extension.name} is up to date")
            continue
        try:
            installer.ensure_installed(extension)
            print(f"Installed {extension.name}")
            success_count += 1
        except InstallError as e:
            print(f"Failed to install {extension.name}: {e.reason}", file=sys.stderr)
            fail_count += 1

    if args.verbose:
        print(f"\nInstalled: {success_count}, Failed: {fail_count}")

    return 0 if fail_count == 0 else 1
