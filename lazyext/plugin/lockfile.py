"""
Lock File.

Records the commit each git-installed extension was installed at, so a
fresh install on another machine checks out the same revision.

Layout (one table per extension):

    ["telescope.nvim"]
    commit = "3e1d4b0..."
    branch = "master"
"""

from pathlib import Path

from lazyext.config.toml_handler import TOMLError, read_toml, write_toml


class LockfileError(Exception):
    """Raised when the lock file cannot be read or written."""

    pass


class Lockfile:
    """In-memory view of the lock file, written back on every change."""

    def __init__(self, path: Path):
        self.path = path
        self._entries: dict[str, dict[str, str]] = {}
        if path.exists():
            try:
                data = read_toml(path)
            except TOMLError as e:
                raise LockfileError(str(e)) from e
            for name, entry in data.items():
                if not isinstance(entry, dict) or "commit" not in entry:
                    raise LockfileError(f"Malformed lock entry for {name} in {path}")
                self._entries[name] = {k: str(v) for k, v in entry.items()}

    def commit_for(self, name: str) -> str | None:
        entry = self._entries.get(name)
        return entry["commit"] if entry else None

    def record(self, name: str, commit: str, branch: str | None = None) -> None:
        """
        Record an installed revision and save.

        Raises:
            LockfileError: If the file cannot be written
        """
        entry = {"commit": commit}
        if branch:
            entry["branch"] = branch
        self._entries[name] = entry

        try:
            write_toml(self.path, dict(sorted(self._entries.items())))
        except TOMLError as e:
            raise LockfileError(str(e)) from e

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
