"""Local filesystem backend."""

import os
from pathlib import Path
from typing import Callable, Iterator

from ..config import DEFAULT_IGNORED_DIRS
from ..exceptions import FileAccessError
from ..models import TextEdit


class LocalFileBackend:
    """Local filesystem backend with path traversal protection.

    All paths are relative to the workspace root. The backend ensures
    that file access cannot escape the workspace boundary.
    """

    def __init__(
        self,
        workspace: str | Path,
        ignored_dirs: set[str] | None = None,
        max_file_size: int | None = 1_000_000,
    ):
        """Initialize backend bound to a workspace root.

        Args:
            workspace: Path to the workspace root
            ignored_dirs: Directory names to skip when walking
            max_file_size: Files larger than this many bytes are not read
        """
        self._workspace = Path(workspace).resolve()
        self._ignored_dirs = ignored_dirs if ignored_dirs is not None else set(DEFAULT_IGNORED_DIRS)
        self._max_file_size = max_file_size

        if not self._workspace.is_dir():
            raise ValueError(f"Workspace path is not a directory: {workspace}")

    @property
    def workspace(self) -> str:
        """Root path of the workspace this backend is bound to."""
        return str(self._workspace)

    def configure(self, ignored_dirs: set[str], max_file_size: int | None) -> None:
        """Apply changed settings; later walks and reads use the new values."""
        self._ignored_dirs = set(ignored_dirs)
        self._max_file_size = max_file_size

    def relative_path(self, path: str | Path) -> str | None:
        """Convert an absolute path to a workspace-relative POSIX path.

        Returns None for paths outside the workspace.
        """
        try:
            return Path(os.path.abspath(path)).relative_to(self._workspace).as_posix()
        except ValueError:
            return None

    def _resolve_safe_path(self, path: str) -> Path:
        """Resolve a relative path safely within the workspace boundary.

        Raises:
            FileAccessError: If the path (or a symlink target) escapes
        """
        try:
            full_path = (self._workspace / path).resolve()
        except OSError as e:
            raise FileAccessError(path, f"invalid path ({e})") from e

        try:
            full_path.relative_to(self._workspace)
        except ValueError:
            raise FileAccessError(path, "path escapes the workspace") from None

        return full_path

    def read_text(self, path: str) -> str:
        """Read file content with path traversal and size protection."""
        full_path = self._resolve_safe_path(path)

        if self._max_file_size is not None and full_path.stat().st_size > self._max_file_size:
            raise FileAccessError(path, f"file exceeds {self._max_file_size} bytes")

        # newline="" keeps CRLF intact so edits can reproduce the file's style
        with open(full_path, encoding="utf-8", errors="ignore", newline="") as handle:
            return handle.read()

    def exists(self, path: str) -> bool:
        try:
            full_path = self._resolve_safe_path(path)
            return full_path.is_file()
        except (FileAccessError, OSError):
            return False

    def walk_files(self, ignore_dirs: set[str] | None = None) -> Iterator[str]:
        """Iterate over all files below the workspace root.

        Args:
            ignore_dirs: Additional directory names to skip

        Yields:
            Relative POSIX file paths within the workspace
        """
        ignored = self._ignored_dirs | (ignore_dirs or set())

        for dirpath, dirnames, filenames in os.walk(self._workspace):
            # Prune ignored directories (modifying in-place)
            dirnames[:] = sorted(d for d in dirnames if d not in ignored)

            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                try:
                    yield file_path.relative_to(self._workspace).as_posix()
                except ValueError:
                    continue

    def find_files(
        self,
        match: Callable[[str], bool],
        ignore_dirs: set[str] | None = None,
    ) -> list[str]:
        return sorted(path for path in self.walk_files(ignore_dirs) if match(path))

    def apply_text_edit(self, path: str, edit: TextEdit) -> None:
        full_path = self._resolve_safe_path(path)
        text = self.read_text(path)
        with open(full_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(edit.apply(text))
