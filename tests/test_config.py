"""Tests for configuration loading and comparison."""

import pytest

from i18n_lens.config import (
    DEFAULT_RESOURCE_GLOB,
    SETTINGS_FILENAME,
    Config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment variables out of these tests."""
    for name in (
        "RESOURCE_GLOB",
        "CODE_REFERENCE_REGEX",
        "IGNORED_DIRS",
        "AUTO_SAVE",
        "MAX_FILE_SIZE",
        "DEBOUNCE_SECONDS",
    ):
        monkeypatch.delenv(f"I18N_LENS_{name}", raising=False)


def test_config_defaults():
    """Test default configuration values."""
    config = Config()

    assert config.resource_glob == DEFAULT_RESOURCE_GLOB
    assert config.code_reference_regex == ""
    assert "node_modules" in config.ignored_dirs
    assert config.respect_gitignore is True
    assert config.auto_save_after_edit is True
    assert config.auto_focus_after_edit is False
    assert config.debounce_seconds == 0.5


def test_config_from_env(monkeypatch):
    """Test loading config from environment variables."""
    monkeypatch.setenv("I18N_LENS_RESOURCE_GLOB", "i18n/*.json")
    monkeypatch.setenv("I18N_LENS_IGNORED_DIRS", "vendor, tmp")
    monkeypatch.setenv("I18N_LENS_AUTO_SAVE", "false")
    monkeypatch.setenv("I18N_LENS_MAX_FILE_SIZE", "2048")

    config = Config.from_env()

    assert config.resource_glob == "i18n/*.json"
    assert "vendor" in config.ignored_dirs
    assert "tmp" in config.ignored_dirs
    assert "node_modules" in config.ignored_dirs
    assert config.auto_save_after_edit is False
    assert config.max_file_size == 2048


def test_config_from_env_ignores_unparsable_values(monkeypatch):
    """Bad numbers and booleans keep the base value."""
    monkeypatch.setenv("I18N_LENS_MAX_FILE_SIZE", "lots")
    monkeypatch.setenv("I18N_LENS_AUTO_SAVE", "maybe")

    config = Config.from_env(base=Config(max_file_size=10))

    assert config.max_file_size == 10
    assert config.auto_save_after_edit is True


def test_config_from_file(tmp_path):
    """Settings file values override defaults; unknown keys are ignored."""
    settings = tmp_path / SETTINGS_FILENAME
    settings.write_text(
        "resource_glob: 'lang/*.json'\n"
        "codelens_enabled: false\n"
        "some_future_setting: 3\n"
    )

    config = Config.from_file(settings)

    assert config.resource_glob == "lang/*.json"
    assert config.codelens_enabled is False


def test_config_from_missing_file(tmp_path):
    assert Config.from_file(tmp_path / SETTINGS_FILENAME) == Config()


@pytest.mark.parametrize(
    "content",
    [
        "resource_glob: [unclosed\n",
        "- just\n- a list\n",
        "max_file_size: huge\n",
    ],
)
def test_config_from_bad_file_uses_defaults(tmp_path, content):
    """Unreadable or invalid settings fall back to the defaults."""
    settings = tmp_path / SETTINGS_FILENAME
    settings.write_text(content)

    assert Config.from_file(settings) == Config()


def test_config_load_precedence(tmp_path, monkeypatch):
    """Environment beats the settings file, which beats the defaults."""
    (tmp_path / SETTINGS_FILENAME).write_text(
        "resource_glob: 'lang/*.json'\ncode_reference_regex: 'tr\\(\"(?<key>[a-z.]+)\"'\n"
    )
    monkeypatch.setenv("I18N_LENS_RESOURCE_GLOB", "i18n/*.json")

    config = Config.load(tmp_path)

    assert config.resource_glob == "i18n/*.json"
    assert config.code_reference_regex == 'tr\\("(?<key>[a-z.]+)"'


class TestConfigDiff:
    """Test which concerns a configuration change touches."""

    def test_no_change(self):
        assert Config().diff(Config()) == set()

    def test_glob_change(self):
        assert Config().diff(Config(resource_glob="lang/*.json")) == {"resource_glob"}

    def test_ignore_settings_share_a_concern(self):
        changed = Config().diff(Config(ignored_dirs=["vendor"], respect_gitignore=False))

        assert changed == {"ignore"}

    def test_toggle_only_change(self):
        changed = Config().diff(Config(codelens_enabled=False, auto_save_after_edit=False))

        assert changed == {"display"}

    def test_multiple_concerns(self):
        changed = Config().diff(
            Config(code_reference_regex="x", code_file_regex=r"\.vue$", debounce_seconds=1)
        )

        assert changed == {"code_reference_regex", "code_file_regex", "display"}
