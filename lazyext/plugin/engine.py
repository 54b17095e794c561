"""
Activation Engine.

This module runs the one-time install + setup sequence of extensions.

Key features:
- Idempotent activation (an active extension is a no-op)
- Dependencies activated first, in resolver order
- Failures recorded per extension; Failed is terminal, no retry
- Sibling activations isolated from each other's failures
"""

from collections.abc import Iterable

from lazyext.core.logger import get_logger
from lazyext.plugin.extension import (
    CyclicDependencyError,
    ExtensionError,
    ExtensionState,
    InstallError,
    SetupError,
)
from lazyext.plugin.installer import Installer, NullInstaller
from lazyext.plugin.registry import Registry
from lazyext.plugin.resolver import DependencyResolver

logger = get_logger("engine")


class ActivationEngine:
    """
    Drives extensions from REGISTERED to ACTIVE (or FAILED).

    All state transitions go through this class. It is not thread-safe:
    activations are expected to run one at a time on the host's event loop.
    """

    def __init__(self, registry: Registry, installer: Installer | None = None):
        self._registry = registry
        self._resolver = DependencyResolver(registry)
        self._installer = installer if installer is not None else NullInstaller()
        self._activating: list[str] = []

    @property
    def registry(self) -> Registry:
        return self._registry

    def activate(self, name: str) -> None:
        """
        Activate an extension and its dependencies.

        Args:
            name: Name of extension to activate

        Raises:
            NotFoundError: If the extension is not registered
            InstallError: If installing it (or a dependency) failed
            SetupError: If its setup (or a dependency's) failed
            CyclicDependencyError: If activation re-enters an extension in progress
        """
        extension = self._registry.get(name)

        if extension.active:
            return

        if extension.failed:
            raise extension.error

        if extension.state is not ExtensionState.REGISTERED:
            start = self._activating.index(name) if name in self._activating else 0
            raise CyclicDependencyError(self._activating[start:] + [name])

        self._activating.append(name)
        try:
            self._activate(extension)
        finally:
            self._activating.pop()

    def _activate(self, extension) -> None:
        name = extension.name

        extension.advance(ExtensionState.INSTALLING)
        try:
            self._installer.ensure_installed(extension)
        except InstallError as e:
            extension.fail(e)
            logger.error(str(e))
            raise
        except Exception as e:
            error = InstallError(name, f"{type(e).__name__}: {e}")
            extension.fail(error)
            logger.error(str(error))
            raise error from e

        try:
            order = self._resolver.resolve(name)
            for dep in order[:-1]:
                self.activate(dep)
        except ExtensionError as e:
            extension.fail(e)
            logger.error(f"Cannot activate {name}: {e}")
            raise

        extension.advance(ExtensionState.SETTING_UP)
        logger.debug(f"Setting up {name}")
        try:
            extension.setup()
        except Exception as e:
            error = SetupError(name, f"{type(e).__name__}: {e}")
            extension.fail(error)
            logger.error(str(error))
            raise error from e

        extension.advance(ExtensionState.ACTIVE)
        logger.debug(f"Activated {name}")

    def activate_all(self, names: Iterable[str]) -> list[ExtensionError]:
        """
        Activate several extensions independently, in the given order.

        A failure does not stop the remaining activations.

        Returns:
            The errors raised, in order
        """
        errors: list[ExtensionError] = []
        for name in names:
            try:
                self.activate(name)
            except ExtensionError as e:
                errors.append(e)
        return errors

    def startup(self) -> list[ExtensionError]:
        """Activate eager extensions once, in registration order."""
        eager = [ext.name for ext in self._registry if ext.eager]
        logger.debug(f"Activating {len(eager)} eager extension(s)")
        return self.activate_all(eager)

    def state(self, name: str) -> ExtensionState:
        return self._registry.get(name).state

    def is_active(self, name: str) -> bool:
        """Check if an extension is active; unknown names are not."""
        return name in self._registry and self._registry.get(name).active

    def active_extensions(self) -> list[str]:
        return [ext.name for ext in self._registry if ext.active]

    def failed_extensions(self) -> list[str]:
        return [ext.name for ext in self._registry if ext.failed]
