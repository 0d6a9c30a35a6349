"""In-memory file backend for testing."""

import threading
from pathlib import PurePosixPath
from typing import Callable, Iterator

from ..exceptions import FileAccessError
from ..models import TextEdit


class InMemoryFileBackend:
    """In-memory file backend for testing.

    Provides a simple dict-based file store that implements the FileBackend
    protocol without hitting the real filesystem.

    Example:
        backend = InMemoryFileBackend("/fake/app", {
            "locales/en.json": '{\\n  "greeting": "Hello"\\n}\\n',
            "src/app.ts": 't("greeting")\\n',
        })
        text = backend.read_text("locales/en.json")
    """

    def __init__(
        self,
        workspace: str = "/fake/workspace",
        files: dict[str, str] | None = None,
    ):
        self._workspace = workspace
        self._lock = threading.Lock()
        self._files: dict[str, str] = {
            self._normalize_path(path): content for path, content in (files or {}).items()
        }
        self.reads: list[str] = []
        self._ignored_dirs: set[str] = set()
        self._max_file_size: int | None = None

    @property
    def workspace(self) -> str:
        return self._workspace

    def configure(self, ignored_dirs: set[str], max_file_size: int | None) -> None:
        self._ignored_dirs = set(ignored_dirs)
        self._max_file_size = max_file_size

    def _normalize_path(self, path: str) -> str:
        return str(PurePosixPath(path))

    def add_file(self, path: str, content: str) -> None:
        """Add or update a file in the fake filesystem."""
        with self._lock:
            self._files[self._normalize_path(path)] = content

    def remove_file(self, path: str) -> None:
        with self._lock:
            self._files.pop(self._normalize_path(path), None)

    def read_text(self, path: str) -> str:
        if ".." in PurePosixPath(path).parts:
            raise FileAccessError(path, "path escapes the workspace")

        normalized = self._normalize_path(path)
        with self._lock:
            self.reads.append(normalized)
            content = self._files.get(normalized)
        if content is None:
            raise FileNotFoundError(normalized)
        if self._max_file_size is not None and len(content.encode("utf-8")) > self._max_file_size:
            raise FileAccessError(path, f"file exceeds {self._max_file_size} bytes")
        return content

    def exists(self, path: str) -> bool:
        with self._lock:
            return self._normalize_path(path) in self._files

    def walk_files(self, ignore_dirs: set[str] | None = None) -> Iterator[str]:
        ignored = self._ignored_dirs | (ignore_dirs or set())
        with self._lock:
            paths = sorted(self._files)

        for path in paths:
            # Check for ignored directories, not the filename itself
            parts = PurePosixPath(path).parts
            if any(part in ignored for part in parts[:-1]):
                continue
            yield path

    def find_files(
        self,
        match: Callable[[str], bool],
        ignore_dirs: set[str] | None = None,
    ) -> list[str]:
        return [path for path in self.walk_files(ignore_dirs) if match(path)]

    def apply_text_edit(self, path: str, edit: TextEdit) -> None:
        text = self.read_text(path)
        self.add_file(path, edit.apply(text))
