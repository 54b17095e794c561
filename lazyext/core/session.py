"""
Session - process-wide extension state and trigger dispatch.

A Session owns the registry, trigger index and activation engine for one
process. Triggers, bindings and explicit activations are messages on a FIFO
queue:

1. Fire: look the trigger up and activate every match, in registration order
2. Bind: route a trigger to an extension (setup callbacks use this instead of
   touching the index directly)
3. Activate: activate one extension by name
4. Startup: activate eager extensions, then fire the startup events

A message posted while the queue is draining (e.g. from inside a setup
callback) runs after the current activation completes.
"""

import atexit
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from lazyext.core.logger import get_logger, set_level
from lazyext.plugin.engine import ActivationEngine
from lazyext.plugin.extension import Extension, ExtensionError
from lazyext.plugin.installer import Installer
from lazyext.plugin.registry import Registry
from lazyext.plugin.triggers import (
    TRIGGER_TYPES,
    LifecycleEvent,
    Trigger,
    TriggerIndex,
    describe,
)

logger = get_logger("session")


class SessionError(Exception):
    """Raised on session lifecycle misuse."""

    pass


@dataclass(frozen=True)
class Fire:
    trigger: Trigger


@dataclass(frozen=True)
class Bind:
    trigger: Trigger
    name: str


@dataclass(frozen=True)
class Activate:
    name: str


@dataclass(frozen=True)
class Startup:
    pass


Message = Fire | Bind | Activate | Startup


class Session:
    """
    Registry + trigger index + activation engine, driven by a message queue.

    Registration happens entirely in the constructor; the registry is sealed
    before any trigger can fire.
    """

    def __init__(
        self,
        extensions: Iterable[Extension],
        installer: Installer | None = None,
        startup_events: Iterable[str] = (),
    ):
        """
        Register and validate extensions.

        Raises:
            DuplicateNameError: If two extensions share a name
            NotFoundError: If a dependency is not registered
            CyclicDependencyError: If the dependency graph has a cycle
        """
        self.registry = Registry()
        for extension in extensions:
            self.registry.register(extension)
        self.registry.seal()

        self.index = TriggerIndex.build(self.registry)
        self.engine = ActivationEngine(self.registry, installer)
        self.startup_events = tuple(startup_events)

        self._queue: deque[Message] = deque()
        self._dispatching = False
        self._started = False

    @classmethod
    def from_config(cls, config_file: Path) -> "Session":
        """
        Build a session from a TOML config file (settings + declarations).

        Raises:
            ConfigError: If the settings are invalid
            ManifestError: If the declarations cannot be read or are invalid
            ExtensionError: If registration fails
        """
        from lazyext.config import load_settings
        from lazyext.plugin.installer import GitInstaller
        from lazyext.plugin.manifest import load_manifest

        settings = load_settings(config_file)
        set_level(settings.log_level)
        extensions = load_manifest(config_file, settings.install_root)
        logger.info(f"Loaded {len(extensions)} extension(s) from {config_file}")
        return cls(
            extensions,
            installer=GitInstaller.from_settings(settings),
            startup_events=settings.startup_events,
        )

    @property
    def started(self) -> bool:
        return self._started

    def startup(self) -> list[ExtensionError]:
        """
        Activate eager extensions once, then fire the startup events.

        Returns:
            Activation errors, in the order they occurred

        Raises:
            SessionError: If called twice
        """
        if self._started:
            raise SessionError("Session already started")
        self._started = True
        return self._post(Startup())

    def fire(self, trigger: Trigger) -> list[ExtensionError]:
        """
        Fire a trigger, activating every extension it matches.

        Returns:
            Activation errors from this drain of the queue (empty when called
            from inside a setup callback; those errors go to the outer caller)
        """
        if not isinstance(trigger, TRIGGER_TYPES):
            raise TypeError(f"Not a trigger descriptor: {trigger!r}")
        return self._post(Fire(trigger))

    def bind(self, trigger: Trigger, name: str) -> list[ExtensionError]:
        """
        Route a trigger to an extension after startup.

        Raises:
            NotFoundError: If the extension is not registered
        """
        if not isinstance(trigger, TRIGGER_TYPES):
            raise TypeError(f"Not a trigger descriptor: {trigger!r}")
        self.registry.get(name)
        return self._post(Bind(trigger, name))

    def activate(self, name: str) -> list[ExtensionError]:
        """
        Activate one extension by name, through the queue.

        Raises:
            NotFoundError: If the extension is not registered
        """
        self.registry.get(name)
        return self._post(Activate(name))

    def _post(self, message: Message) -> list[ExtensionError]:
        self._queue.append(message)
        if self._dispatching:
            return []
        return self._drain()

    def _drain(self) -> list[ExtensionError]:
        self._dispatching = True
        errors: list[ExtensionError] = []
        try:
            while self._queue:
                errors.extend(self._handle(self._queue.popleft()))
        finally:
            self._dispatching = False
        return errors

    def _handle(self, message: Message) -> list[ExtensionError]:
        if isinstance(message, Bind):
            self.index.bind(message.trigger, message.name)
            logger.debug(f"Bound {describe(message.trigger)} to {message.name}")
            return []

        if isinstance(message, Activate):
            return self.engine.activate_all([message.name])

        if isinstance(message, Startup):
            errors = self.engine.startup()
            for event in self.startup_events:
                self._queue.append(Fire(LifecycleEvent(event)))
            logger.info(
                f"Startup: {len(self.engine.active_extensions())} active, "
                f"{len(errors)} failed"
            )
            return errors

        names = self.index.lookup(message.trigger)
        if names:
            logger.debug(f"{describe(message.trigger)} -> {', '.join(names)}")
        return self.engine.activate_all(names)


# Process-wide session
_session: Session | None = None


def start(
    extensions: Iterable[Extension],
    installer: Installer | None = None,
    startup_events: Iterable[str] = (),
) -> Session:
    """
    Create and start the process-wide session.

    Raises:
        SessionError: If a session is already running
    """
    return _install(Session(extensions, installer, startup_events))


def start_from_config(config_file: Path) -> Session:
    """Create and start the process-wide session from a config file."""
    return _install(Session.from_config(config_file))


def _install(session: Session) -> Session:
    global _session
    if _session is not None:
        raise SessionError("A session is already running")
    _session = session
    atexit.register(shutdown)
    for error in session.startup():
        logger.warning(f"Startup activation failed: {error}")
    return session


def current() -> Session:
    """
    Get the process-wide session.

    Raises:
        SessionError: If no session is running
    """
    if _session is None:
        raise SessionError("No session running. Call lazyext.start() first.")
    return _session


def fire(trigger: Trigger) -> list[ExtensionError]:
    """Fire a trigger on the process-wide session."""
    return current().fire(trigger)


def bind(trigger: Trigger, name: str) -> list[ExtensionError]:
    """Bind a trigger on the process-wide session."""
    return current().bind(trigger, name)


def shutdown() -> None:
    """Tear down the process-wide session."""
    global _session
    if _session is None:
        return
    failed = _session.engine.failed_extensions()
    if failed:
        logger.info(f"Shutting down with failed extension(s): {', '.join(failed)}")
    _session = None
    atexit.unregister(shutdown)
