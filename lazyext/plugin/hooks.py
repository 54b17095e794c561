"""
Build Hooks.

This module runs an extension's build step after a fresh install.

Key features:
- Declared build command (split with shlex), e.g. ``make`` or ``npm install``
- Fallback discovery of ``hooks/build.sh`` / ``hooks/build.py`` in the checkout
- Environment variable injection
- Subprocess execution with timeout and exit code handling
"""

import os
import shlex
import stat
import subprocess
import sys
from pathlib import Path


class HookError(Exception):
    """Base exception for hook-related errors."""

    pass


_HOOK_SUFFIXES = (".sh", ".py")


def run_build(
    extension_dir: Path,
    name: str,
    command: str | None = None,
    env_vars: dict[str, str] | None = None,
    timeout: int = 60,
) -> bool:
    """
    Run the build step for an installed extension.

    Args:
        extension_dir: Extension checkout directory
        name: Extension name
        command: Declared build command; when None, a hooks/build script is used
        env_vars: Additional environment variables to inject
        timeout: Timeout in seconds (default: 60)

    Returns:
        True if a build step ran, False if there was nothing to run

    Raises:
        HookError: If the build step fails or times out
    """
    if command:
        cmd = shlex.split(command)
    else:
        hook_path = find_build_hook(extension_dir)
        if hook_path is None:
            return False
        cmd = (
            [sys.executable, str(hook_path)]
            if hook_path.suffix == ".py"
            else [str(hook_path)]
        )

    env = os.environ.copy()
    if env_vars:
        env.update(env_vars)
    env["LAZYEXT_EXTENSION_DIR"] = str(extension_dir)
    env["LAZYEXT_EXTENSION_NAME"] = name

    try:
        result = subprocess.run(
            cmd,
            cwd=extension_dir,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise HookError(f"Build for {name} timed out after {timeout} seconds") from e
    except OSError as e:
        raise HookError(f"Failed to run build for {name}: {e}") from e

    if result.returncode != 0:
        raise HookError(
            f"Build for {name} failed with exit code {result.returncode}:\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )
    return True


def find_build_hook(extension_dir: Path) -> Path | None:
    """
    Find a build script in the checkout's hooks/ directory.

    Looks for hooks/build.sh, then hooks/build.py.
    """
    hooks_dir = extension_dir / "hooks"
    if not hooks_dir.is_dir():
        return None

    for suffix in _HOOK_SUFFIXES:
        hook_path = hooks_dir / f"build{suffix}"
        if hook_path.is_file():
            if suffix == ".sh":
                hook_path.chmod(hook_path.stat().st_mode | stat.S_IEXEC)
            return hook_path

    return None
