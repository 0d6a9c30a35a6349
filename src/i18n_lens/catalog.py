"""Resource catalog: parsed translation files and their key/value maps."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, TypeVar

from pydantic import StrictStr, TypeAdapter, ValidationError

from .backends import FileBackend
from .events import ChangeNotifier
from .exceptions import FileAccessError, ResourceParseError
from .messages import LoggingUserNotifier, UserNotifier
from .models import KeyPresence, ResourceFile, display_name
from .patterns import PatternSet

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# A resource is a flat JSON object of string keys to string values
_RESOURCE_VALUES = TypeAdapter(dict[str, StrictStr])


def parse_resource(path: str, text: str) -> ResourceFile:
    """Parse resource file content.

    Raises:
        ResourceParseError: If the text is not a flat JSON object of strings
    """
    try:
        values = _RESOURCE_VALUES.validate_json(text)
    except ValidationError as e:
        raise ResourceParseError(path, _describe_validation_error(e)) from e
    return ResourceFile(path=path, values=values)


def _describe_validation_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if first.get("type") == "dict_type":
        return "top level is not a JSON object"
    if location:
        return f"{first['msg']} at '{location}'"
    return first["msg"]


def run_batch(
    executor: Optional[Executor],
    func: Callable[[T], R],
    items: Iterable[T],
) -> list[R]:
    """Run ``func`` over ``items`` concurrently and wait for all of them.

    ``func`` is expected to handle its own per-item errors.
    """
    items = list(items)
    if not items:
        return []
    if executor is not None:
        return list(executor.map(func, items))
    with ThreadPoolExecutor(max_workers=8, thread_name_prefix="i18n-lens-read") as pool:
        return list(pool.map(func, items))


@dataclass
class ScanReport:
    """Outcome of a full scan.

    ``matched`` lists every path the resource glob selected, whether or
    not it parsed.
    """

    matched: list[str] = field(default_factory=list)
    loaded: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)


class ResourceCatalog:
    """In-memory collection of parsed resource files.

    Reads and parses happen concurrently; every mutation of the catalog
    is made under a single lock.
    """

    def __init__(
        self,
        backend: FileBackend,
        patterns: Callable[[], PatternSet],
        notifier: Optional[UserNotifier] = None,
        changes: Optional[ChangeNotifier] = None,
        executor: Optional[Executor] = None,
    ):
        """Initialize the catalog.

        Args:
            backend: File access used to enumerate and read resources
            patterns: Returns the pattern set currently in effect
            notifier: Receives user-facing warnings for bad files
            changes: Told about every mutation (it decides whether to fire)
            executor: Pool used for concurrent reads (a private pool if None)
        """
        self._backend = backend
        self._patterns = patterns
        self._notifier = notifier or LoggingUserNotifier()
        self._changes = changes
        self._executor = executor
        self._lock = threading.RLock()
        self._files: dict[str, ResourceFile] = {}

    def _load(self, path: str) -> tuple[str, Optional[ResourceFile], Optional[str]]:
        """Read and parse one file; errors are reported, never raised."""
        try:
            resource = parse_resource(path, self._backend.read_text(path))
        except ResourceParseError as e:
            logger.error("JSON parse error in %s: %s", path, e.reason)
            self._notifier.warn(f"{display_name(path)} is not a valid resource file: {e.reason}")
            return path, None, e.reason
        except (FileAccessError, OSError) as e:
            logger.error("Could not read resource file %s: %s", path, e)
            self._notifier.warn(f"Failed to read {display_name(path)}: {e}")
            return path, None, str(e)

        logger.info("Found %d translation keys in %s", len(resource.values), resource.name)
        return path, resource, None

    def _notify(self) -> None:
        if self._changes is not None:
            self._changes.catalog_did_change()

    def scan_all(self) -> ScanReport:
        """Enumerate, read and parse every resource file, replacing the catalog.

        Files that no longer match the glob are dropped. A file that fails
        to parse keeps its previously parsed values, if it had any.
        """
        patterns = self._patterns()
        paths = self._backend.find_files(patterns.is_resource_file, patterns.ignored_dirs)
        logger.info("Found %d resource files matching %s", len(paths), patterns.resource_glob)

        results = run_batch(self._executor, self._load, paths)

        report = ScanReport(matched=list(paths))
        with self._lock:
            previous = self._files
            files: dict[str, ResourceFile] = {}
            for path, resource, error in results:
                if resource is not None:
                    files[path] = resource
                    report.loaded.append(path)
                    continue
                report.errors[path] = error or "unknown error"
                if path in previous:
                    files[path] = previous[path]
            changed = files != previous
            self._files = files

        if changed:
            self._notify()
        return report

    def upsert(self, path: str) -> bool:
        """Re-read one file and replace (or add) its entry.

        Returns:
            True if the catalog now holds the file's current content
        """
        _, resource, _ = self._load(path)
        if resource is None:
            return False

        with self._lock:
            existing = self._files.get(path)
            if existing is not None:
                logger.info("Updating existing resource: %s", resource.name)
                existing.values = resource.values
            else:
                logger.info("Adding new resource: %s", resource.name)
                self._files[path] = resource

        self._notify()
        return True

    def remove(self, path: str) -> bool:
        with self._lock:
            removed = self._files.pop(path, None)
        if removed is None:
            return False
        logger.info("Removed resource file from catalog: %s", removed.name)
        self._notify()
        return True

    def get_all(self) -> list[ResourceFile]:
        """Point-in-time list of cataloged files, in discovery order."""
        with self._lock:
            return list(self._files.values())

    def get(self, path: str) -> Optional[ResourceFile]:
        with self._lock:
            return self._files.get(path)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._files

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def paths(self) -> list[str]:
        with self._lock:
            return list(self._files)

    def all_keys(self) -> list[str]:
        """Every key defined by at least one resource, in first-seen order."""
        seen: dict[str, None] = {}
        for resource in self.get_all():
            for key in resource.values:
                seen.setdefault(key, None)
        return list(seen)

    def find_by_key_existence(self, key: str) -> KeyPresence:
        """Split resource display names by whether they translate ``key``.

        An empty string counts as a missing translation.
        """
        presence = KeyPresence()
        for resource in self.get_all():
            if resource.has_translation(key):
                presence.present.append(resource.name)
            else:
                presence.missing.append(resource.name)
        return presence
