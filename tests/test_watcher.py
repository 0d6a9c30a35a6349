"""Tests for the watchdog-based workspace watcher."""

import time

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from i18n_lens.config import DEFAULT_CODE_REFERENCE_REGEX, Config
from i18n_lens.engine import create_engine
from i18n_lens.messages import RecordingUserNotifier
from i18n_lens.models import FileEvent, FileEventType
from i18n_lens.watcher import WorkspaceWatcher, _WorkspaceEventHandler


@pytest.fixture
def watcher(tmp_path):
    watcher = WorkspaceWatcher(tmp_path, ignored_dirs={"node_modules"})
    yield watcher
    watcher.dispose()


@pytest.fixture
def received(watcher):
    events = []
    watcher.subscribe(events.append)
    return events


class TestEventTranslation:
    """Test turning watchdog events into workspace FileEvents."""

    def test_relative_paths(self, tmp_path, watcher, received):
        watcher.dispatch(FileEventType.CREATED, str(tmp_path / "src" / "app.ts"))

        assert received == [FileEvent(FileEventType.CREATED, "src/app.ts")]

    def test_outside_and_ignored_paths_are_dropped(self, tmp_path, watcher, received):
        watcher.dispatch(FileEventType.CHANGED, "/elsewhere/app.ts")
        watcher.dispatch(FileEventType.CHANGED, str(tmp_path / "node_modules" / "x" / "a.js"))

        assert received == []

    def test_handler_maps_event_kinds(self, tmp_path, watcher, received):
        handler = _WorkspaceEventHandler(watcher)
        path = str(tmp_path / "a.ts")

        handler.dispatch(FileCreatedEvent(path))
        handler.dispatch(FileModifiedEvent(path))
        handler.dispatch(FileDeletedEvent(path))
        handler.dispatch(DirCreatedEvent(str(tmp_path / "dir")))

        assert [e.type for e in received] == [
            FileEventType.CREATED,
            FileEventType.CHANGED,
            FileEventType.DELETED,
        ]

    def test_move_is_delete_then_create(self, tmp_path, watcher, received):
        handler = _WorkspaceEventHandler(watcher)

        handler.dispatch(FileMovedEvent(str(tmp_path / "old.ts"), str(tmp_path / "new.ts")))

        assert received == [
            FileEvent(FileEventType.DELETED, "old.ts"),
            FileEvent(FileEventType.CREATED, "new.ts"),
        ]


def test_start_and_dispose(watcher):
    watcher.start()
    assert watcher.running

    watcher.dispose()
    assert not watcher.running


def _wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.05)
    return False


def test_live_workspace_updates(tmp_path):
    """A file written to disk shows up in the index without manual events."""
    (tmp_path / "locales").mkdir()
    (tmp_path / "locales" / "en.json").write_text('{\n  "home.title": "Home"\n}\n')
    (tmp_path / "src").mkdir()
    config = Config(code_reference_regex=DEFAULT_CODE_REFERENCE_REGEX, debounce_seconds=0.05)
    engine = create_engine(tmp_path, config=config, notifier=RecordingUserNotifier())
    engine.initialize()

    try:
        (tmp_path / "src" / "new.ts").write_text('t("home.title")\n')
        assert _wait_for(
            lambda: any(l.path == "src/new.ts" for l in engine.index.get_locations("home.title"))
        )

        (tmp_path / "src" / "new.ts").unlink()
        assert _wait_for(
            lambda: all(l.path != "src/new.ts" for l in engine.index.get_locations("home.title"))
        )
    finally:
        engine.dispose()
