"""Ingestion orchestration: initial scan, watch events and config reloads."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .backends import FileBackend, LocalFileBackend
from .catalog import ResourceCatalog
from .config import SETTINGS_FILENAME, Config
from .events import ChangeNotifier, Disposable, EventChannel
from .exceptions import FileAccessError
from .index import LocationIndex
from .messages import LoggingUserNotifier, UserNotifier
from .models import FileEvent, FileEventType, FileKind, ResourceFile, SourceLocation
from .patterns import PatternSet, load_gitignore
from .watcher import WorkspaceWatcher

logger = logging.getLogger(__name__)

GITIGNORE_FILENAME = ".gitignore"

WatcherFactory = Callable[[str, set[str]], WorkspaceWatcher]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


class ResourceEngine:
    """Keeps the resource catalog and location index in step with a workspace.

    Usage:
        engine = ResourceEngine(LocalFileBackend(root), Config.load(root))
        engine.on_loaded.subscribe(build_ui)
        engine.initialize()

        engine.index.get_locations("checkout.submit")
        engine.catalog.find_by_key_existence("checkout.submit")

    File events (from the watcher, or passed to :meth:`handle_event`) and
    configuration changes are applied one at a time.
    """

    def __init__(
        self,
        backend: FileBackend,
        config: Optional[Config] = None,
        notifier: Optional[UserNotifier] = None,
        config_loader: Optional[Callable[[], Config]] = None,
        watch: bool = True,
        watcher_factory: Optional[WatcherFactory] = None,
        max_workers: int = 8,
    ):
        """Initialize the engine without touching the workspace.

        Args:
            backend: File access for the workspace
            config: Initial configuration (defaults if None)
            notifier: Receives user-facing warnings and errors
            config_loader: Re-reads configuration when the settings file changes
            watch: Install a filesystem watcher during initialization
            watcher_factory: Builds the watcher (for tests)
            max_workers: Concurrent file reads during bulk scans
        """
        self.backend = backend
        self.config = config or Config()
        self.notifier = notifier or LoggingUserNotifier()
        self.state = EngineState.UNINITIALIZED

        self._config_loader = config_loader
        self._watch = watch
        self._watcher_factory = watcher_factory or WorkspaceWatcher
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="i18n-lens-io")
        self._patterns: Optional[PatternSet] = None
        self._disposables: list[Disposable] = []
        self._watcher = None

        self.changes = ChangeNotifier(
            self._catalog_snapshot, self._locations_snapshot, delay=self.config.debounce_seconds
        )
        self.catalog = ResourceCatalog(
            backend, self._current_patterns, self.notifier, self.changes, self._executor
        )
        self.index = LocationIndex(
            backend, self._current_patterns, self.notifier, self.changes, self._executor
        )
        self.on_loaded: EventChannel[list[Disposable]] = EventChannel("loaded")
        self._configure_backend(self.config)

    def _configure_backend(self, config: Config) -> None:
        self.backend.configure(set(config.ignored_dirs), config.max_file_size)
        if self._watcher is not None:
            self._watcher.ignored_dirs = set(config.ignored_dirs)

    # -- patterns -----------------------------------------------------------

    @property
    def patterns(self) -> PatternSet:
        return self._current_patterns()

    def _current_patterns(self) -> PatternSet:
        if self._patterns is None:
            self._patterns = self._build_patterns(self.config)
        return self._patterns

    def _build_patterns(self, config: Config) -> PatternSet:
        return PatternSet(config, self.notifier, gitignore=self._read_gitignore(config))

    def _read_gitignore(self, config: Config):
        if not config.respect_gitignore:
            return None
        try:
            text = self.backend.read_text(GITIGNORE_FILENAME)
        except (FileAccessError, OSError):
            logger.info(".gitignore not found, no rules loaded")
            return None
        spec = load_gitignore(text)
        if spec is not None:
            logger.info("Loaded %d rules from .gitignore", len(spec.patterns))
        return spec

    def _catalog_snapshot(self) -> list[ResourceFile]:
        return self.catalog.get_all()

    def _locations_snapshot(self) -> dict[str, list[SourceLocation]]:
        return self.index.snapshot()

    # -- lifecycle ----------------------------------------------------------

    def initialize(self) -> "ResourceEngine":
        """Load patterns, scan the workspace and start watching it.

        Raises:
            RuntimeError: If the engine was already initialized or disposed
            Exception: Whatever made initialization fail, after it has been
                logged and reported to the user
        """
        with self._lock:
            if self.state is not EngineState.UNINITIALIZED:
                raise RuntimeError(f"Cannot initialize an engine that is {self.state.value}")
            self.state = EngineState.LOADING

            try:
                logger.info("i18n-lens initializing in %s", self.backend.workspace)
                self.changes.suspend()
                self._patterns = self._build_patterns(self.config)

                self._load_all()

                if self._watch:
                    self._start_watching()

                self.state = EngineState.READY
                logger.info(
                    "Initialization completed: %d resource file(s), %d key(s) indexed",
                    len(self.catalog),
                    len(self.index.keys()),
                )
            except Exception as e:
                logger.exception("Error during i18n-lens initialization")
                self.notifier.error(f"i18n-lens failed to initialize: {e}")
                self.state = EngineState.FAILED
                self._release()
                raise

        self.changes.resume(announce=True)
        self.on_loaded.fire(self._disposables)
        return self

    def _load_all(self) -> None:
        """Run the resource branch and the code branch side by side."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="i18n-lens-load") as branches:
            resources = branches.submit(self._load_resources)
            code = branches.submit(self._load_code)
            resources.result()
            code.result()

    def _load_resources(self) -> None:
        report = self.catalog.scan_all()
        if report.errors:
            logger.warning("%d resource file(s) could not be loaded", len(report.errors))
        # Locations are text-based, so unparsable resources are indexed as well
        self.index.replace_file_class(FileKind.RESOURCE, report.matched)

    def _resource_paths(self) -> list[str]:
        patterns = self.patterns
        return self.backend.find_files(patterns.is_resource_file, patterns.ignored_dirs)

    def _load_code(self) -> None:
        patterns = self.patterns
        paths = self.backend.find_files(patterns.is_code_file, patterns.ignored_dirs)
        logger.info("Found %d code files", len(paths))
        self.index.replace_file_class(FileKind.CODE, paths)

    def _start_watching(self) -> None:
        watcher = self._watcher_factory(self.backend.workspace, set(self.patterns.ignored_dirs))
        self._watcher = watcher
        self._disposables.append(watcher.subscribe(self.handle_event))
        watcher.start()
        self._disposables.append(Disposable(watcher.dispose))

    def _release(self) -> None:
        for disposable in reversed(self._disposables):
            try:
                disposable.dispose()
            except Exception:
                logger.exception("Error while disposing %r", disposable)
        self._disposables.clear()
        self._watcher = None

    def dispose(self) -> None:
        """Stop watching, cancel pending notifications and release threads."""
        with self._lock:
            if self.state is EngineState.DISPOSED:
                return
            self.state = EngineState.DISPOSED
        # Outside the lock: stopping the watcher joins its thread, which may be
        # waiting in handle_event
        self._release()
        self.changes.dispose()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("i18n-lens engine disposed")

    @property
    def ready(self) -> bool:
        return self.state is EngineState.READY

    # -- file events --------------------------------------------------------

    def handle_event(self, event: FileEvent) -> None:
        """Apply one filesystem event to the catalog and index.

        Failures are logged and reported as warnings; they never propagate
        back into the watcher.
        """
        with self._lock:
            if self.state is not EngineState.READY:
                return
            try:
                self._dispatch(event)
            except Exception as e:
                logger.exception("Error handling %s event for %s", event.type.value, event.path)
                self.notifier.warn(f"Failed to handle file {event.type.value} event: {e}")

    def _dispatch(self, event: FileEvent) -> None:
        path = event.path
        if path == SETTINGS_FILENAME:
            if self._config_loader is not None:
                self.reload_config()
            return
        if path == GITIGNORE_FILENAME:
            self._reload_gitignore()
            return

        patterns = self.patterns
        if patterns.is_resource_file(path) or path in self.catalog:
            logger.info("Resource file '%s' was affected by '%s' event", path, event.type.value)
            self._handle_resource_event(event)
        elif patterns.is_code_file(path) or self.index.kind_of(path) is FileKind.CODE:
            logger.info("Code file '%s' was affected by '%s' event", path, event.type.value)
            self._handle_code_event(event)

    def _handle_resource_event(self, event: FileEvent) -> None:
        path = event.path
        if event.type is FileEventType.DELETED:
            self.catalog.remove(path)
            self.index.remove_locations_for_file(path)
            return

        self.catalog.upsert(path)
        if event.type is FileEventType.CREATED and self.index.kind_of(path) is None:
            self.index.scan_resource_file(path)
        else:
            # Old locations go before the fresh scan lands
            self.index.rescan_file(path, FileKind.RESOURCE)

    def _handle_code_event(self, event: FileEvent) -> None:
        path = event.path
        if event.type is FileEventType.DELETED:
            self.index.remove_locations_for_file(path)
        elif event.type is FileEventType.CREATED and self.index.kind_of(path) is None:
            self.index.scan_code_file(path)
        else:
            self.index.rescan_file(path, FileKind.CODE)

    # -- configuration ------------------------------------------------------

    def apply_config(self, config: Config) -> set[str]:
        """Switch to a new configuration, rescanning only what it affects.

        Returns:
            The set of changed concerns (see :meth:`Config.diff`)
        """
        with self._lock:
            changed = self.config.diff(config)
            self.config = config
            if not changed:
                return changed

            logger.info("Configuration changed: %s", ", ".join(sorted(changed)))
            if "ignore" in changed:
                self._configure_backend(config)
            self._patterns = self._build_patterns(config)
            if self.state is not EngineState.READY:
                return changed

            try:
                with self.changes.batch():
                    if changed & {"resource_glob", "ignore"}:
                        report = self.catalog.scan_all()
                        self.index.replace_file_class(FileKind.RESOURCE, report.matched)
                    elif "resource_line_regex" in changed:
                        self.index.replace_file_class(FileKind.RESOURCE, self._resource_paths())

                    if changed & {"code_reference_regex", "code_file_regex", "ignore"}:
                        self._load_code()
            except Exception as e:
                logger.exception("Error applying configuration changes")
                self.notifier.error(f"Failed to apply configuration changes: {e}")
            else:
                logger.info("Configuration changes applied")
            return changed

    def reload_config(self) -> set[str]:
        """Re-read configuration through the loader and apply it."""
        if self._config_loader is None:
            return set()
        try:
            config = self._config_loader()
        except Exception as e:
            logger.exception("Error reading configuration")
            self.notifier.warn(f"Failed to reload configuration: {e}")
            return set()
        return self.apply_config(config)

    def _reload_gitignore(self) -> None:
        logger.info(".gitignore changed, reloading")
        self.patterns.gitignore = self._read_gitignore(self.config)
        with self.changes.batch():
            self._load_code()


class EngineHost:
    """Owns the one active engine for a workspace.

    Reloading disposes the current engine before a new one is built, so
    watchers of the old engine never deliver events twice.
    """

    def __init__(self, factory: Callable[[], ResourceEngine]):
        self._factory = factory
        self._engine: Optional[ResourceEngine] = None
        self._lock = threading.Lock()

    @property
    def engine(self) -> Optional[ResourceEngine]:
        return self._engine

    def start(self) -> ResourceEngine:
        with self._lock:
            if self._engine is None:
                engine = self._factory()
                try:
                    engine.initialize()
                except Exception:
                    engine.dispose()
                    raise
                self._engine = engine
            return self._engine

    def reload(self) -> ResourceEngine:
        """Dispose the current engine and start a fresh one."""
        with self._lock:
            old, self._engine = self._engine, None
        if old is not None:
            logger.info("Resetting and reloading i18n-lens")
            old.dispose()
        return self.start()

    def dispose(self) -> None:
        with self._lock:
            engine, self._engine = self._engine, None
        if engine is not None:
            engine.dispose()


def create_engine(
    workspace: str | Path,
    config: Optional[Config] = None,
    notifier: Optional[UserNotifier] = None,
    watch: bool = True,
) -> ResourceEngine:
    """Build an engine over a local workspace.

    When no config is given, it is loaded from the workspace settings file
    and the environment, and re-loaded whenever the settings file changes.
    """
    root = Path(workspace).resolve()
    loader = None
    if config is None:
        loader = lambda: Config.load(root)  # noqa: E731
        config = loader()
    backend = LocalFileBackend(
        root, ignored_dirs=set(config.ignored_dirs), max_file_size=config.max_file_size
    )
    return ResourceEngine(backend, config, notifier, config_loader=loader, watch=watch)
