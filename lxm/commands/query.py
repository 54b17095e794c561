"""
lxm query command (-Q).

List declarations, show one extension, or print the startup order.
"""

from typing import Any

from lazyext.plugin.installer import GitInstaller
from lazyext.plugin.registry import Registry
from lazyext.plugin.resolver import DependencyResolver
from lazyext.plugin.triggers import describe
from lxm.commands import load_registry


def query_command(args: Any) -> int:
    """Execute query command."""
    settings, registry = load_registry(args.config)

    if args.order:
        for name in startup_order(registry):
            print(name)
        return 0

    installer = GitInstaller.from_settings(settings)
    names = args.targets or registry.names()

    for name in names:
        extension = registry.get(name)
        installed = "installed" if installer.is_installed(extension) else "missing"
        kind = "eager" if extension.eager else "lazy"

        if not args.info:
            print(f"{name} [{kind}, {installed}]")
            continue

        print(f"Name         : {name}")
        print(f"Source       : {extension.source.url if extension.source else '(local)'}")
        print(f"Activation   : {kind}")
        print(f"Status       : {installed}")
        triggers = ", ".join(describe(t) for t in extension.triggers) or "None"
        print(f"Triggers     : {triggers}")
        print(f"Depends On   : {', '.join(extension.dependencies) or 'None'}")
        if extension.build:
            print(f"Build        : {extension.build}")
        print()

    return 0


def startup_order(registry: Registry) -> list[str]:
    """Eager extensions with their dependencies, in activation order."""
    resolver = DependencyResolver(registry)
    order: list[str] = []
    for extension in registry:
        if not extension.eager:
            continue
        for name in resolver.resolve(extension.name):
            if name not in order:
                order.append(name)
    return order
