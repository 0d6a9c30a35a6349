"""Filesystem watching for a workspace, built on watchdog."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .events import Disposable, EventChannel
from .models import FileEvent, FileEventType

logger = logging.getLogger(__name__)


class _WorkspaceEventHandler(FileSystemEventHandler):
    """Translates watchdog events into workspace-relative FileEvents."""

    def __init__(self, watcher: "WorkspaceWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(FileEventType.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(FileEventType.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher.dispatch(FileEventType.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # A move is a delete of the old path and a create of the new one
        self._watcher.dispatch(FileEventType.DELETED, event.src_path)
        self._watcher.dispatch(FileEventType.CREATED, event.dest_path)


class WorkspaceWatcher:
    """Watches a workspace recursively and publishes FileEvents.

    Events are delivered on watchdog's observer thread, one at a time and
    in the order the operating system reported them.
    """

    def __init__(self, workspace: str | Path, ignored_dirs: Optional[set[str]] = None):
        self.workspace = Path(workspace).resolve()
        self.ignored_dirs = ignored_dirs or set()
        self.events: EventChannel[FileEvent] = EventChannel("file event")
        self._observer: Optional[Observer] = None

    def _relative(self, path: str | bytes) -> Optional[str]:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        try:
            relative = Path(os.path.abspath(path)).relative_to(self.workspace)
        except ValueError:
            return None
        if any(part in self.ignored_dirs for part in relative.parts[:-1]):
            return None
        return relative.as_posix()

    def dispatch(self, event_type: FileEventType, path: str | bytes) -> None:
        relative = self._relative(path)
        if relative is None:
            return
        logger.debug("File event %s: %s", event_type.value, relative)
        self.events.fire(FileEvent(event_type, relative))

    def subscribe(self, listener: Callable[[FileEvent], None]) -> Disposable:
        return self.events.subscribe(listener)

    def start(self) -> "WorkspaceWatcher":
        if self._observer is not None:
            return self
        observer = Observer()
        observer.schedule(_WorkspaceEventHandler(self), str(self.workspace), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes", self.workspace)
        return self

    @property
    def running(self) -> bool:
        return self._observer is not None

    def dispose(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
        logger.info("Stopped watching %s", self.workspace)
