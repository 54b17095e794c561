"""
Git Operations for Extension Installation.

This module provides the git commands the installer needs.

Key features:
- Partial clones (``--filter=blob:none``) of a branch
- Checkout of a pinned commit or tag
- Latest semantic version tag lookup (for ``tag = "*"``)
- HEAD commit lookup for the lock file
"""

import re
import subprocess
from pathlib import Path


class GitError(Exception):
    """Base exception for git-related errors."""

    pass


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    """
    Run a git command and return its stdout.

    Raises:
        GitError: If git is missing or exits non-zero
    """
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("git command not found. Please install git.") from e

    if result.returncode != 0:
        raise GitError(
            f"git {args[0]} failed: {(result.stderr or result.stdout).strip()}"
        )
    return result.stdout


def clone_repository(
    repo_url: str,
    target_dir: Path,
    branch: str | None = None,
    filter_spec: str | None = None,
) -> None:
    """
    Clone an extension repository.

    Args:
        repo_url: Git repository URL
        target_dir: Target directory for clone
        branch: Optional branch (or tag) to clone
        filter_spec: Optional partial clone filter, e.g. ``blob:none``

    Raises:
        GitError: If clone operation fails
    """
    target_dir.parent.mkdir(parents=True, exist_ok=True)

    cmd = ["clone"]
    if filter_spec:
        cmd.append(f"--filter={filter_spec}")
    if branch:
        cmd.extend(["--branch", branch])
    cmd.extend([repo_url, str(target_dir)])

    _run_git(cmd)


def checkout(repo_dir: Path, ref: str) -> None:
    """
    Check out a commit or tag.

    Raises:
        GitError: If checkout operation fails
    """
    _run_git(["checkout", "--quiet", ref], cwd=repo_dir)


def head_commit(repo_dir: Path) -> str:
    """
    Get the commit currently checked out.

    Raises:
        GitError: If the directory is not a git checkout
    """
    return _run_git(["rev-parse", "HEAD"], cwd=repo_dir).strip()


def list_tags(repo_dir: Path) -> list[str]:
    """
    List all tags in repository.

    Raises:
        GitError: If list operation fails
    """
    output = _run_git(["tag", "-l"], cwd=repo_dir)
    return [line.strip() for line in output.splitlines() if line.strip()]


def get_latest_tag(repo_dir: Path, prefix: str = "v") -> str | None:
    """
    Get the latest semantic version tag.

    Args:
        repo_dir: Extension repository directory
        prefix: Tag prefix (default: "v")

    Returns:
        Latest tag name, or None if no tags found

    Raises:
        GitError: If operation fails
    """
    version_tags = []
    for tag in list_tags(repo_dir):
        if tag.startswith(prefix):
            version_str = tag[len(prefix):]
            if _is_valid_semver(version_str):
                version_tags.append((tag, version_str))

    if not version_tags:
        return None

    version_tags.sort(key=lambda x: _parse_semver(x[1]), reverse=True)
    return version_tags[0][0]


def _is_valid_semver(version: str) -> bool:
    return bool(re.match(r"^\d+\.\d+\.\d+$", version))


def _parse_semver(version: str) -> tuple[int, int, int]:
    major, minor, patch = version.split(".")
    return (int(major), int(minor), int(patch))
