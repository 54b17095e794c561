"""
lazyext - declarative extension registration with lazy activation.

Extensions declare activation triggers (commands, key sequences, filetypes,
lifecycle events), dependencies and a setup callback. Nothing is installed or
set up until a trigger fires, except eager extensions at startup.

Example:
    import lazyext
    from lazyext import Command, Extension, FileType

    lazyext.start([
        Extension("theme", setup=apply_theme),
        Extension("finder", triggers=[Command("find")], setup=setup_finder),
        Extension("lsp", triggers=[FileType("*.go")], dependencies=["finder"]),
    ])
    lazyext.fire(FileType("main.go"))
"""

__version__ = "0.1.0"

from lazyext.core.session import (
    Session,
    SessionError,
    bind,
    current,
    fire,
    shutdown,
    start,
    start_from_config,
)
from lazyext.plugin.extension import (
    CyclicDependencyError,
    DuplicateNameError,
    Extension,
    ExtensionError,
    ExtensionState,
    InstallError,
    NotFoundError,
    SetupError,
    Source,
)
from lazyext.plugin.triggers import Command, FileType, KeySequence, LifecycleEvent

__all__ = [
    "__version__",
    "Command",
    "CyclicDependencyError",
    "DuplicateNameError",
    "Extension",
    "ExtensionError",
    "ExtensionState",
    "FileType",
    "InstallError",
    "KeySequence",
    "LifecycleEvent",
    "NotFoundError",
    "Session",
    "SessionError",
    "SetupError",
    "Source",
    "bind",
    "current",
    "fire",
    "shutdown",
    "start",
    "start_from_config",
]
