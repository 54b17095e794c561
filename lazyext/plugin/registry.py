"""
Extension Registry.

Holds the static declarations of all extensions, in registration order.
The registry is populated once at startup and sealed before any trigger can
fire; after that only each extension's ``state`` changes.
"""

from collections.abc import Iterator

from lazyext.plugin.extension import (
    DuplicateNameError,
    Extension,
    NotFoundError,
    RegistryError,
)


class Registry:
    """Ordered name -> Extension mapping."""

    def __init__(self):
        self._extensions: dict[str, Extension] = {}
        self._sealed = False

    def register(self, extension: Extension) -> None:
        """
        Register an extension.

        Raises:
            DuplicateNameError: If the name is already registered
            RegistryError: If the registry has been sealed
        """
        if self._sealed:
            raise RegistryError(
                f"Cannot register {extension.name}: registry is sealed"
            )
        if extension.name in self._extensions:
            raise DuplicateNameError(extension.name)
        self._extensions[extension.name] = extension

    def get(self, name: str) -> Extension:
        """
        Get a registered extension.

        Raises:
            NotFoundError: If no extension has that name
        """
        try:
            return self._extensions[name]
        except KeyError:
            raise NotFoundError(name) from None

    def seal(self) -> None:
        """
        Validate the dependency graph and freeze the registry.

        Raises:
            NotFoundError: If a dependency is not registered
            CyclicDependencyError: If the dependency graph has a cycle
        """
        from lazyext.plugin.resolver import DependencyResolver

        for ext in self._extensions.values():
            for dep in ext.dependencies:
                if dep not in self._extensions:
                    raise NotFoundError(dep, required_by=ext.name)

        DependencyResolver(self).check_acyclic()
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def names(self) -> list[str]:
        return list(self._extensions)

    def positions(self) -> dict[str, int]:
        """Extension name -> registration position."""
        return {name: position for position, name in enumerate(self._extensions)}

    def __contains__(self, name: object) -> bool:
        return name in self._extensions

    def __iter__(self) -> Iterator[Extension]:
        return iter(self._extensions.values())

    def __len__(self) -> int:
        return len(self._extensions)
