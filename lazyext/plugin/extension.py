"""
Extension Data Model.

This module defines the unit of registration and its error hierarchy.

Key features:
- Extension declaration with triggers, dependencies and setup callback
- Monotonic state machine (Registered -> Installing -> SettingUp -> Active)
- Terminal Failed state carrying the recorded error
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lazyext.plugin.triggers import Trigger


class ExtensionError(Exception):
    """Base exception for extension-related errors."""

    pass


class RegistryError(ExtensionError):
    """Raised when the registry is modified after being sealed."""

    pass


class DuplicateNameError(ExtensionError):
    """Raised when an extension name is registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Extension already registered: {name}")
        self.name = name


class NotFoundError(ExtensionError):
    """Raised when an extension name is not registered."""

    def __init__(self, name: str, required_by: str | None = None):
        if required_by:
            message = f"Extension {required_by} depends on {name}, but it is not registered"
        else:
            message = f"Extension not found: {name}"
        super().__init__(message)
        self.name = name
        self.required_by = required_by


class CyclicDependencyError(ExtensionError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        super().__init__(f"Circular dependency detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class ActivationError(ExtensionError):
    """Base class for errors local to one extension's activation."""

    phase = "activation"

    def __init__(self, name: str, reason: str):
        super().__init__(f"{self.phase} failed for extension {name}: {reason}")
        self.name = name
        self.reason = reason


class InstallError(ActivationError):
    """Raised when an extension's code could not be made available."""

    phase = "install"


class SetupError(ActivationError):
    """Raised when an extension's setup callback fails."""

    phase = "setup"


class ExtensionState(Enum):
    """Extension state enumeration."""

    REGISTERED = "registered"
    INSTALLING = "installing"
    SETTING_UP = "setting_up"
    ACTIVE = "active"
    FAILED = "failed"


_TRANSITIONS: dict[ExtensionState, frozenset[ExtensionState]] = {
    ExtensionState.REGISTERED: frozenset({ExtensionState.INSTALLING}),
    ExtensionState.INSTALLING: frozenset(
        {ExtensionState.SETTING_UP, ExtensionState.FAILED}
    ),
    ExtensionState.SETTING_UP: frozenset(
        {ExtensionState.ACTIVE, ExtensionState.FAILED}
    ),
    ExtensionState.ACTIVE: frozenset(),
    ExtensionState.FAILED: frozenset(),
}


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Source:
    """
    Where an extension's code is fetched from.

    Attributes:
        url: Git repository URL
        branch: Branch to clone (None for the remote default)
        tag: Tag to check out after cloning
        commit: Commit to check out after cloning (wins over tag)
    """

    url: str
    branch: str | None = None
    tag: str | None = None
    commit: str | None = None

    @property
    def pinned_ref(self) -> str | None:
        return self.commit or self.tag


@dataclass(eq=False)
class Extension:
    """
    A registered extension.

    Attributes:
        name: Unique identifier
        triggers: Activation triggers (empty means eager unless ``lazy``)
        dependencies: Names that must be active before setup runs
        setup: Zero-argument initialization callback
        source: Optional git source for the installer
        build: Optional build command run after a fresh install
        lazy: Keep a trigger-less extension out of eager startup
        state: Current lifecycle state
        error: Recorded failure if state is FAILED
    """

    name: str
    triggers: tuple["Trigger", ...] = ()
    dependencies: tuple[str, ...] = ()
    setup: Callable[[], object] = _noop
    source: Source | None = None
    build: str | None = None
    lazy: bool = False
    state: ExtensionState = field(default=ExtensionState.REGISTERED, init=False)
    error: ExtensionError | None = field(default=None, init=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ExtensionError(f"Invalid extension name: {self.name!r}")
        self.triggers = tuple(self.triggers)
        self.dependencies = tuple(self.dependencies)
        if self.name in self.dependencies:
            raise CyclicDependencyError([self.name, self.name])
        if not callable(self.setup):
            raise ExtensionError(f"Setup for extension {self.name} is not callable")

    @property
    def eager(self) -> bool:
        return not self.triggers and not self.lazy

    @property
    def active(self) -> bool:
        return self.state is ExtensionState.ACTIVE

    @property
    def failed(self) -> bool:
        return self.state is ExtensionState.FAILED

    def advance(self, new_state: ExtensionState) -> None:
        """
        Move to a new state.

        Raises:
            ExtensionError: If the transition would go backwards or leave FAILED
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise ExtensionError(
                f"Invalid state transition for {self.name}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    def fail(self, error: ExtensionError) -> ExtensionError:
        """Record a failure and return it for raising."""
        self.advance(ExtensionState.FAILED)
        self.error = error
        return error
