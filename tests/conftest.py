"""Pytest configuration and shared fixtures."""

import pytest

from i18n_lens.backends import InMemoryFileBackend
from i18n_lens.config import DEFAULT_CODE_REFERENCE_REGEX, Config
from i18n_lens.engine import ResourceEngine
from i18n_lens.messages import RecordingUserNotifier
from i18n_lens.patterns import PatternSet

EN_JSON = """{
  "checkout.title": "Checkout",
  "checkout.button.submit": "Submit",
  "home.title": "Home"
}
"""

TR_JSON = """{
  "checkout.title": "Ödeme",
  "home.title": ""
}
"""

APP_TS = """import { t } from "i18n";

export const title = t("checkout.title");
const label = t("checkout.button.submit") + t("home.title");
"""


@pytest.fixture
def files() -> dict[str, str]:
    """A small workspace: two resources and one code file."""
    return {
        "locales/en.json": EN_JSON,
        "locales/tr.json": TR_JSON,
        "src/app.ts": APP_TS,
    }


@pytest.fixture
def backend(files) -> InMemoryFileBackend:
    return InMemoryFileBackend(files=files)


@pytest.fixture
def config() -> Config:
    """Provide a test configuration.

    The debounce delay is long enough that notifications only go out when
    a test flushes them.
    """
    return Config(code_reference_regex=DEFAULT_CODE_REFERENCE_REGEX, debounce_seconds=30)


@pytest.fixture
def notifier() -> RecordingUserNotifier:
    return RecordingUserNotifier()


@pytest.fixture
def patterns(config, notifier) -> PatternSet:
    return PatternSet(config, notifier)


@pytest.fixture
def engine(backend, config, notifier):
    """An initialized engine without a filesystem watcher."""
    engine = ResourceEngine(backend, config, notifier, watch=False)
    engine.initialize()
    engine.changes.flush()
    yield engine
    engine.dispose()
