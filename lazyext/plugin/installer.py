"""
Extension Installers.

The activation engine calls ``ensure_installed`` before any setup runs.
Installers must be callable repeatedly; calls after the first success are
no-ops.

Key features:
- Installer protocol consumed by the activation engine
- NullInstaller for extensions defined in-process
- GitInstaller: partial clone, pinned/locked checkout, build step, lock file
"""

import shutil
from pathlib import Path
from typing import Protocol

from lazyext.config import Settings
from lazyext.core.logger import get_logger
from lazyext.plugin.extension import Extension, InstallError
from lazyext.plugin.git_ops import (
    GitError,
    checkout,
    clone_repository,
    get_latest_tag,
    head_commit,
)
from lazyext.plugin.hooks import HookError, run_build
from lazyext.plugin.lockfile import Lockfile, LockfileError

logger = get_logger("installer")

LATEST_TAG = "*"


class Installer(Protocol):
    """Makes an extension's code available before setup."""

    def ensure_installed(self, extension: Extension) -> None:
        """
        Raises:
            InstallError: If the code could not be made available
        """
        ...


class NullInstaller:
    """Installer for extensions whose code is already importable."""

    def ensure_installed(self, extension: Extension) -> None:
        return None


class GitInstaller:
    """
    Installs extensions with a git source into ``install_root/<name>``.

    Extensions without a source are treated as present.
    """

    def __init__(
        self,
        install_root: Path,
        lockfile: Lockfile | None = None,
        git_filter: str = "blob:none",
        default_branch: str | None = None,
        build_timeout: int = 60,
    ):
        self.install_root = install_root
        self.lockfile = lockfile
        self.git_filter = git_filter or None
        self.default_branch = default_branch or None
        self.build_timeout = build_timeout
        self._installed: set[str] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitInstaller":
        """
        Create an installer from validated settings.

        Raises:
            LockfileError: If the existing lock file is malformed
        """
        return cls(
            install_root=settings.install_root,
            lockfile=Lockfile(settings.lockfile),
            git_filter=settings.git_filter,
            default_branch=settings.default_branch,
            build_timeout=settings.build_timeout,
        )

    def path_for(self, name: str) -> Path:
        return self.install_root / name

    def is_installed(self, extension: Extension) -> bool:
        if extension.source is None or extension.name in self._installed:
            return True
        return self.path_for(extension.name).is_dir()

    def ensure_installed(self, extension: Extension) -> None:
        """
        Clone, check out, and build an extension if not yet present.

        Raises:
            InstallError: If any step fails; a partial checkout is removed
        """
        if self.is_installed(extension):
            self._installed.add(extension.name)
            return

        target = self.path_for(extension.name)
        try:
            self._install(extension, target)
        except (GitError, HookError, LockfileError, OSError) as e:
            shutil.rmtree(target, ignore_errors=True)
            raise InstallError(extension.name, str(e)) from e

        self._installed.add(extension.name)

    def _install(self, extension: Extension, target: Path) -> None:
        source = extension.source
        branch = source.branch or self.default_branch
        logger.info(f"Installing {extension.name} from {source.url}")

        clone_repository(source.url, target, branch=branch, filter_spec=self.git_filter)

        ref = source.pinned_ref
        if ref == LATEST_TAG:
            ref = get_latest_tag(target)
        elif ref is None and self.lockfile is not None:
            ref = self.lockfile.commit_for(extension.name)
        if ref:
            logger.debug(f"Checking out {ref} for {extension.name}")
            checkout(target, ref)

        if run_build(
            target, extension.name, command=extension.build, timeout=self.build_timeout
        ):
            logger.info(f"Built {extension.name}")

        if self.lockfile is not None:
            self.lockfile.record(extension.name, head_commit(target), branch)
