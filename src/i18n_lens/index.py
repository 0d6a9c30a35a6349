"""Location index: where every translation key textually appears.

Both resource files and code files are scanned line by line with their
class's pattern. The index maps each key to the ordered list of spans
where it occurs, and keeps a reverse map of the keys each file
contributed so that dropping a file's locations touches only its keys.

Keys whose last location is removed are pruned, so "present in the
index" always means "has at least one location".
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from typing import Callable, Iterable, Optional

from .backends import FileBackend
from .catalog import run_batch
from .events import ChangeNotifier
from .exceptions import FileAccessError
from .messages import LoggingUserNotifier, UserNotifier
from .models import FileKind, SourceLocation
from .patterns import LineMatcher, PatternSet

logger = logging.getLogger(__name__)

Occurrence = tuple[str, SourceLocation]


def scan_text(path: str, text: str, matcher: LineMatcher) -> list[Occurrence]:
    """Extract every key occurrence from ``text``.

    Occurrences come out in line order, then left to right within a line.
    """
    return [
        (match.key, SourceLocation(path, line_number, match.start, match.end))
        for line_number, match in matcher.scan(text)
    ]


class LocationIndex:
    """Key -> locations map over resource and code files."""

    def __init__(
        self,
        backend: FileBackend,
        patterns: Callable[[], PatternSet],
        notifier: Optional[UserNotifier] = None,
        changes: Optional[ChangeNotifier] = None,
        executor: Optional[Executor] = None,
    ):
        self._backend = backend
        self._patterns = patterns
        self._notifier = notifier or LoggingUserNotifier()
        self._changes = changes
        self._executor = executor
        self._lock = threading.RLock()
        self._locations: dict[str, list[SourceLocation]] = {}
        self._keys_by_file: dict[str, set[str]] = {}
        self._kind_by_file: dict[str, FileKind] = {}

    # -- scanning -----------------------------------------------------------

    def _matcher_for(self, kind: FileKind) -> LineMatcher:
        patterns = self._patterns()
        if kind is FileKind.RESOURCE:
            return patterns.resource_line_matcher()
        return patterns.code_reference_matcher()

    def _read(self, path: str, kind: FileKind) -> Optional[list[Occurrence]]:
        """Read and scan one file. Returns None if it could not be read."""
        try:
            text = self._backend.read_text(path)
        except (FileAccessError, OSError) as e:
            logger.error("Error scanning %s: %s", path, e)
            self._notifier.warn(f"Could not scan {path}: {e}")
            return None
        return scan_text(path, text, self._matcher_for(kind))

    def _add(self, path: str, kind: FileKind, occurrences: list[Occurrence]) -> None:
        """Append occurrences for a file. Caller must hold _lock."""
        self._kind_by_file[path] = kind
        keys = self._keys_by_file.setdefault(path, set())
        for key, location in occurrences:
            self._locations.setdefault(key, []).append(location)
            keys.add(key)

    def _drop(self, path: str) -> bool:
        """Remove a file's locations. Caller must hold _lock."""
        self._kind_by_file.pop(path, None)
        keys = self._keys_by_file.pop(path, set())
        removed = False
        for key in keys:
            locations = self._locations.get(key)
            if not locations:
                continue
            kept = [location for location in locations if location.path != path]
            if len(kept) == len(locations):
                continue
            removed = True
            if kept:
                self._locations[key] = kept
            else:
                del self._locations[key]
        return removed

    def _notify(self) -> None:
        if self._changes is not None:
            self._changes.locations_did_change()

    def _scan(self, path: str, kind: FileKind) -> int:
        occurrences = self._read(path, kind)
        if occurrences is None:
            return 0
        with self._lock:
            self._add(path, kind, occurrences)
        if occurrences:
            logger.info("%s: %d key(s) located", path, len(occurrences))
            self._notify()
        else:
            logger.debug("%s: no keys found", path)
        return len(occurrences)

    def scan_resource_file(self, path: str) -> int:
        """Append the key occurrences of a resource file's raw text.

        Prior locations for the file are *not* removed; use
        :meth:`rescan_file` after a change.

        Returns:
            Number of occurrences found
        """
        return self._scan(path, FileKind.RESOURCE)

    def scan_code_file(self, path: str) -> int:
        """Append the key references found in a code file.

        Files that fail the code-file test are ignored.
        """
        if not self._patterns().is_code_file(path):
            logger.debug("Skipping %s: not a code file", path)
            return 0
        return self._scan(path, FileKind.CODE)

    def rescan_file(self, path: str, kind: FileKind) -> int:
        """Replace a changed file's locations with a fresh scan.

        The file is read first; its old locations are then removed and the
        new ones added under one lock acquisition, so no reader ever sees
        both the stale and the fresh entries.
        """
        if kind is FileKind.CODE and not self._patterns().is_code_file(path):
            return 0
        occurrences = self._read(path, kind)
        with self._lock:
            removed = self._drop(path)
            if occurrences:
                self._add(path, kind, occurrences)
        if removed or occurrences:
            self._notify()
        return len(occurrences or [])

    def remove_locations_for_file(self, path: str) -> bool:
        """Drop every location owned by ``path``.

        Returns:
            True if anything was removed
        """
        with self._lock:
            removed = self._drop(path)
        if removed:
            logger.info("Removed locations for %s", path)
            self._notify()
        return removed

    def replace_file_class(self, kind: FileKind, paths: Iterable[str]) -> int:
        """Rebuild all locations of one file class from the given files.

        Files are read concurrently; the swap happens under one lock so
        the other class's locations are never disturbed.

        Returns:
            Total number of occurrences indexed for the class
        """
        paths = list(paths)
        results = run_batch(self._executor, lambda path: (path, self._read(path, kind)), paths)

        total = 0
        with self._lock:
            changed = False
            for path in [p for p, k in self._kind_by_file.items() if k is kind]:
                changed = self._drop(path) or changed
            for path, occurrences in results:
                if occurrences is None:
                    continue
                self._add(path, kind, occurrences)
                total += len(occurrences)
                changed = changed or bool(occurrences)
        logger.info("Indexed %d %s occurrence(s) in %d file(s)", total, kind.value, len(paths))
        if changed:
            self._notify()
        return total

    # -- queries ------------------------------------------------------------

    def get_locations(self, key: str) -> list[SourceLocation]:
        with self._lock:
            return list(self._locations.get(key, ()))

    def get_keys_at_file(self, path: str) -> dict[str, list[SourceLocation]]:
        """Every key with a location in ``path``, with only that file's locations."""
        with self._lock:
            keys = self._keys_by_file.get(path, set())
            result: dict[str, list[SourceLocation]] = {}
            for key in sorted(keys):
                own = [location for location in self._locations.get(key, ()) if location.path == path]
                if own:
                    result[key] = own
            return result

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._locations)

    def files(self, kind: Optional[FileKind] = None) -> list[str]:
        with self._lock:
            return [path for path, k in self._kind_by_file.items() if kind is None or k is kind]

    def kind_of(self, path: str) -> Optional[FileKind]:
        with self._lock:
            return self._kind_by_file.get(path)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._locations

    def snapshot(self) -> dict[str, list[SourceLocation]]:
        """A copy of the whole index, safe to hand to other threads."""
        with self._lock:
            return {key: list(locations) for key, locations in self._locations.items()}

    def clear(self) -> None:
        with self._lock:
            had_entries = bool(self._locations)
            self._locations.clear()
            self._keys_by_file.clear()
            self._kind_by_file.clear()
        if had_entries:
            self._notify()
