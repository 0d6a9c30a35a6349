"""CLI tests."""

import json

import click
import pytest
from click.testing import CliRunner

from i18n_lens.config import DEFAULT_CODE_REFERENCE_REGEX, SETTINGS_FILENAME
from i18n_lens.main import _parse_translations, cli


@pytest.fixture
def runner():
    """Create Click test runner."""
    return CliRunner()


@pytest.fixture
def sample_app(tmp_path, monkeypatch):
    """Create a minimal app with two languages."""
    for name in ("RESOURCE_GLOB", "CODE_REFERENCE_REGEX", "AUTO_SAVE"):
        monkeypatch.delenv(f"I18N_LENS_{name}", raising=False)

    app = tmp_path / "app"
    (app / "locales").mkdir(parents=True)
    (app / "locales" / "en.json").write_text(
        '{\n  "home.title": "Home",\n  "home.stale": "Old"\n}\n'
    )
    (app / "locales" / "tr.json").write_text('{\n  "home.stale": "Eski"\n}\n')
    (app / "src").mkdir()
    (app / "src" / "app.ts").write_text('const title = t("home.title");\n')
    quoted = DEFAULT_CODE_REFERENCE_REGEX.replace("'", "''")
    (app / SETTINGS_FILENAME).write_text(f"code_reference_regex: '{quoted}'\n")
    return app


def _read(app, language):
    return json.loads((app / "locales" / f"{language}.json").read_text())


class TestCLI:
    """Test the CLI commands."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("scan", "where", "watch", "add", "edit", "delete"):
            assert command in result.output

    def test_scan(self, runner, sample_app):
        result = runner.invoke(cli, ["scan", str(sample_app)])

        assert result.exit_code == 0, result.output
        assert "Found 2 resource file(s)" in result.output
        assert "Missing translations" in result.output
        assert "home.stale" in result.output

    def test_scan_requires_existing_path(self, runner):
        result = runner.invoke(cli, ["scan", "/nonexistent/path"])

        assert result.exit_code != 0
        assert "does not exist" in result.output

    def test_where(self, runner, sample_app):
        result = runner.invoke(cli, ["where", str(sample_app), "home.title"])

        assert result.exit_code == 0, result.output
        assert "locales/en.json:2:4" in result.output
        assert "src/app.ts:1:18" in result.output

    def test_where_unknown_key(self, runner, sample_app):
        result = runner.invoke(cli, ["where", str(sample_app), "nope"])

        assert "'nope' was not found" in result.output

    def test_add(self, runner, sample_app):
        result = runner.invoke(
            cli, ["add", str(sample_app), "home.title", "--set", "tr=Ana sayfa"]
        )

        assert result.exit_code == 0, result.output
        assert _read(sample_app, "tr")["home.title"] == "Ana sayfa"

    def test_add_aborts_without_every_language(self, runner, sample_app):
        result = runner.invoke(cli, ["add", str(sample_app), "home.new", "--set", "en=New"])

        assert result.exit_code != 0
        assert "aborted" in result.output
        assert "home.new" not in _read(sample_app, "en")

    def test_edit(self, runner, sample_app):
        result = runner.invoke(cli, ["edit", str(sample_app), "home.stale", "--set", "en=Older"])

        assert result.exit_code == 0, result.output
        assert _read(sample_app, "en")["home.stale"] == "Older"

    def test_delete_asks_for_confirmation(self, runner, sample_app):
        result = runner.invoke(cli, ["delete", str(sample_app), "home.stale"], input="n\n")

        assert result.exit_code != 0
        assert "home.stale" in _read(sample_app, "en")

    def test_delete(self, runner, sample_app):
        result = runner.invoke(cli, ["delete", str(sample_app), "home.stale", "--yes"])

        assert result.exit_code == 0, result.output
        assert _read(sample_app, "en") == {"home.title": "Home"}
        assert _read(sample_app, "tr") == {}


def test_parse_translations():
    assert _parse_translations(("en=Hi", "tr=a=b")) == {"en": "Hi", "tr": "a=b"}


def test_parse_translations_rejects_bad_pairs():
    with pytest.raises(click.BadParameter):
        _parse_translations(("nolanguage",))
