"""
Activation Triggers.

This module implements the trigger descriptors and the index that maps a
fired trigger to the extensions it activates.

Trigger kinds:
1. Command: exact command name match
2. KeySequence: exact mode + keys match
3. FileType: exact or glob pattern match (``*.go``, ``python``)
4. LifecycleEvent: exact event name match

Matches are always returned in extension registration order, so a trigger
shared by several extensions activates them deterministically.
"""

import fnmatch
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from lazyext.plugin.extension import Extension, NotFoundError


@dataclass(frozen=True)
class Command:
    """A command invocation, e.g. ``Telescope``."""

    name: str


@dataclass(frozen=True)
class KeySequence:
    """A key sequence typed in a mode, e.g. ``("n", "<leader>f")``."""

    mode: str
    keys: str
    desc: str = field(default="", compare=False)


@dataclass(frozen=True)
class FileType:
    """A filetype or file name pattern, e.g. ``*.go`` or ``python``."""

    pattern: str


@dataclass(frozen=True)
class LifecycleEvent:
    """A host lifecycle event, e.g. ``BufReadPre`` or ``VeryLazy``."""

    name: str


Trigger = Command | KeySequence | FileType | LifecycleEvent

TRIGGER_TYPES = (Command, KeySequence, FileType, LifecycleEvent)


class TriggerIndex:
    """
    Maps triggers to extension names.

    Command, KeySequence and LifecycleEvent triggers are stored as exact
    routes; FileType triggers are stored as compiled glob patterns.
    """

    def __init__(self, order: dict[str, int]):
        """
        Initialize an empty TriggerIndex.

        Args:
            order: Extension name -> registration position, used to sort matches
        """
        self._order = order
        self._exact_routes: dict[Trigger, list[str]] = {}
        self._pattern_routes: list[tuple[str, re.Pattern, list[str]]] = []

    @classmethod
    def build(cls, extensions: Iterable[Extension]) -> "TriggerIndex":
        """Build an index from extensions given in registration order."""
        extensions = list(extensions)
        index = cls({ext.name: position for position, ext in enumerate(extensions)})
        for ext in extensions:
            for trigger in ext.triggers:
                index.bind(trigger, ext.name)
        return index

    def _glob_to_regex(self, pattern: str) -> re.Pattern:
        """Convert a filetype glob pattern to a compiled regex."""
        return re.compile(fnmatch.translate(pattern))

    def bind(self, trigger: Trigger, name: str) -> None:
        """
        Route a trigger to an extension.

        Raises:
            NotFoundError: If the extension was not part of the index
            TypeError: If trigger is not a trigger descriptor
        """
        if name not in self._order:
            raise NotFoundError(name)
        if not isinstance(trigger, TRIGGER_TYPES):
            raise TypeError(f"Not a trigger descriptor: {trigger!r}")

        if isinstance(trigger, FileType):
            for pattern, _regex, names in self._pattern_routes:
                if pattern == trigger.pattern:
                    if name not in names:
                        names.append(name)
                    return
            self._pattern_routes.append(
                (trigger.pattern, self._glob_to_regex(trigger.pattern), [name])
            )
            return

        names = self._exact_routes.setdefault(trigger, [])
        if name not in names:
            names.append(name)

    def lookup(self, trigger: Trigger) -> list[str]:
        """
        Find the extensions a fired trigger activates.

        Args:
            trigger: The fired trigger

        Returns:
            Matching extension names, in registration order, without duplicates
        """
        matches: set[str] = set()

        if isinstance(trigger, FileType):
            for pattern, regex, names in self._pattern_routes:
                if pattern == trigger.pattern or regex.match(trigger.pattern):
                    matches.update(names)
        else:
            matches.update(self._exact_routes.get(trigger, ()))

        return sorted(matches, key=self._order.__getitem__)

    def triggers_for(self, name: str) -> list[Trigger]:
        """List the triggers currently routed to an extension."""
        found: list[Trigger] = [
            trigger for trigger, names in self._exact_routes.items() if name in names
        ]
        found.extend(
            FileType(pattern)
            for pattern, _regex, names in self._pattern_routes
            if name in names
        )
        return found


def describe(trigger: Trigger) -> str:
    """Short human-readable form used by logs and the CLI."""
    if isinstance(trigger, Command):
        return f"cmd:{trigger.name}"
    if isinstance(trigger, KeySequence):
        return f"keys:{trigger.mode}:{trigger.keys}"
    if isinstance(trigger, FileType):
        return f"ft:{trigger.pattern}"
    return f"event:{trigger.name}"
