"""Tests for adding, editing and deleting translations."""

import json

import pytest

from i18n_lens.catalog import ResourceCatalog
from i18n_lens.editing import (
    LineStyle,
    TranslationAborted,
    TranslationEditor,
    closest_key,
    plan_delete,
    plan_insert,
    plan_update,
    render_entry,
    rewrite_json,
    sniff_line_style,
)


class TestClosestKey:
    """Test choosing where a new key goes."""

    def test_longest_shared_prefix_wins(self):
        candidates = ["checkout.button.submit", "checkout.title", "home.title"]

        assert closest_key("checkout.button.cancel", candidates) == "checkout.button.submit"

    def test_similarity_breaks_ties(self):
        assert closest_key("home.titles", ["home.subtitle", "home.title"]) == "home.title"

    def test_no_shared_prefix_still_picks_most_similar(self):
        assert closest_key("footer", ["header", "zzz"]) == "header"

    def test_no_candidates(self):
        assert closest_key("a.b", []) is None


class TestSniffLineStyle:
    """Test detecting the layout of a resource file."""

    def test_tabs_without_trailing_comma(self):
        assert sniff_line_style('{\n\t"a": "b"\n}\n') == LineStyle(indent="\t", comma="")

    def test_crlf_and_single_quotes(self):
        style = sniff_line_style("{\r\n    'a': 'b',\r\n}")

        assert style == LineStyle(indent="    ", quote="'", comma=",", newline="\r\n")

    def test_default_for_empty_object(self):
        assert sniff_line_style("{}") == LineStyle()


TEXT = '{\n  "checkout.button.submit": "Submit",\n  "home.title": "Home"\n}\n'


class TestPlans:
    """Test planning minimal edits."""

    def test_insert_after_anchor(self, patterns):
        edit, line = plan_insert(
            TEXT, "checkout.button.cancel", "Cancel", "checkout.button.submit", patterns
        )

        result = edit.apply(TEXT)

        assert line == 2
        assert result.splitlines()[2] == '  "checkout.button.cancel": "Cancel",'
        assert json.loads(result)["checkout.button.cancel"] == "Cancel"

    def test_insert_after_last_entry_moves_comma(self, patterns):
        edit, line = plan_insert(TEXT, "home.subtitle", "Welcome", "home.title", patterns)

        result = edit.apply(TEXT)

        assert line == 3
        assert json.loads(result) == {
            "checkout.button.submit": "Submit",
            "home.title": "Home",
            "home.subtitle": "Welcome",
        }

    def test_insert_without_anchor_rewrites(self, patterns):
        edit, _ = plan_insert("{}", "a", "A", None, patterns)

        assert json.loads(edit.apply("{}")) == {"a": "A"}

    def test_insert_escapes_values(self, patterns):
        edit, _ = plan_insert(TEXT, "home.quote", 'Say "hi"', "home.title", patterns)

        assert json.loads(edit.apply(TEXT))["home.quote"] == 'Say "hi"'

    def test_update_keeps_comma(self, patterns):
        edit = plan_update(TEXT, "checkout.button.submit", "Send", patterns)

        result = edit.apply(TEXT)

        assert result.splitlines()[1] == '  "checkout.button.submit": "Send",'
        assert json.loads(result)["home.title"] == "Home"

    def test_update_unknown_key(self, patterns):
        assert plan_update(TEXT, "nope", "x", patterns) is None

    def test_delete_middle_entry(self, patterns):
        result = plan_delete(TEXT, "checkout.button.submit", patterns).apply(TEXT)

        assert result == '{\n  "home.title": "Home"\n}\n'

    def test_delete_last_entry_removes_previous_comma(self, patterns):
        result = plan_delete(TEXT, "home.title", patterns).apply(TEXT)

        assert json.loads(result) == {"checkout.button.submit": "Submit"}
        assert result == '{\n  "checkout.button.submit": "Submit"\n}\n'

    def test_rewrite_json_keeps_crlf(self):
        text = '{\r\n    "a": "A",\r\n    "b": "B"\r\n}\r\n'

        result = rewrite_json(text, {"a": None, "c": "C"}).apply(text)

        assert result == '{\r\n    "b": "B",\r\n    "c": "C"\r\n}\r\n'

    def test_rewrite_json_without_changes(self):
        assert rewrite_json('{"a": "A"}', {"a": "A"}) is None

    def test_update_on_a_shared_line_rewrites_the_file(self, patterns):
        text = '{"a": "1", "b": "2"}\n'

        result = plan_update(text, "a", "NEW", patterns).apply(text)

        assert json.loads(result) == {"a": "NEW", "b": "2"}

    def test_delete_on_a_shared_line_rewrites_the_file(self, patterns):
        text = '{"a": "1", "b": "2"}\n'

        result = plan_delete(text, "a", patterns).apply(text)

        assert json.loads(result) == {"b": "2"}

    def test_insert_next_to_a_shared_line_rewrites_the_file(self, patterns):
        text = '{\n  "a": "1", "b": "2"\n}\n'

        edit, line = plan_insert(text, "a.b", "3", "a", patterns)
        result = edit.apply(text)

        assert json.loads(result) == {"a": "1", "b": "2", "a.b": "3"}
        assert '"a.b": "3"' in result.splitlines()[line]

    def test_single_quoted_entries_escape_quotes_and_backslashes(self):
        style = LineStyle(indent="  ", quote="'", comma=",")

        entry = render_entry(style, "it's", "C:\\dir 'x'")

        assert entry == "  'it\\'s': 'C:\\\\dir \\'x\\'',"


class TestTranslationEditor:
    """Test writing translation changes to resource files."""

    @pytest.fixture
    def catalog(self, backend, patterns, notifier):
        catalog = ResourceCatalog(backend, lambda: patterns, notifier)
        catalog.scan_all()
        return catalog

    @pytest.fixture
    def make_editor(self, backend, catalog, patterns, config, notifier):
        def _make(**overrides):
            current = config.model_copy(update=overrides)
            return TranslationEditor(backend, catalog, lambda: patterns, lambda: current, notifier)

        return _make

    def _values(self, backend, path):
        return json.loads(backend.read_text(path))

    def test_add_inserts_next_to_closest_key(self, backend, make_editor):
        edits = make_editor().add("checkout.button.cancel", {"en": "Cancel", "tr": "İptal"})

        assert [e.path for e in edits] == ["locales/en.json", "locales/tr.json"]
        assert all(e.applied for e in edits)
        en_lines = backend.read_text("locales/en.json").splitlines()
        assert en_lines[3] == '  "checkout.button.cancel": "Cancel",'
        assert self._values(backend, "locales/tr.json")["checkout.button.cancel"] == "İptal"

    def test_add_updates_existing_values(self, backend, make_editor):
        make_editor().add("home.title", {"tr": "Ana sayfa"})

        assert self._values(backend, "locales/tr.json")["home.title"] == "Ana sayfa"
        assert self._values(backend, "locales/en.json")["home.title"] == "Home"

    def test_add_is_all_or_nothing(self, backend, make_editor):
        before = backend.read_text("locales/en.json")

        with pytest.raises(TranslationAborted, match="tr"):
            make_editor().add("checkout.button.cancel", {"en": "Cancel"})

        assert backend.read_text("locales/en.json") == before

    def test_add_without_auto_save_stages_edits(self, backend, make_editor):
        before = backend.read_text("locales/en.json")
        editor = make_editor(auto_save_after_edit=False, auto_focus_after_edit=True)

        edits = editor.add("new.key", {"en": "New", "tr": "Yeni"})

        assert backend.read_text("locales/en.json") == before
        assert not any(e.applied for e in edits)
        assert all(e.reveal_line is not None for e in edits)

        editor.commit(edits)

        assert self._values(backend, "locales/en.json")["new.key"] == "New"

    def test_edit_changes_only_different_values(self, backend, make_editor):
        edits = make_editor().edit("checkout.title", {"en": "Checkout", "tr": "Ödeme yap"})

        assert [e.path for e in edits] == ["locales/tr.json"]
        assert self._values(backend, "locales/tr.json")["checkout.title"] == "Ödeme yap"

    def test_delete_from_every_file(self, backend, make_editor):
        edits = make_editor().delete("checkout.title")

        assert len(edits) == 2
        assert "checkout.title" not in self._values(backend, "locales/en.json")
        assert self._values(backend, "locales/tr.json") == {"home.title": ""}

    def test_bulk_update(self, backend, make_editor):
        make_editor().bulk_update(
            {
                "home.title": {"en": "Start", "tr": "Başla"},
                "home.footer": {"en": "Footer", "tr": ""},
            }
        )

        en = self._values(backend, "locales/en.json")
        tr = self._values(backend, "locales/tr.json")
        assert en["home.title"] == "Start"
        assert en["home.footer"] == "Footer"
        assert tr["home.title"] == "Başla"
        assert "home.footer" not in tr

    def test_bulk_delete(self, backend, make_editor):
        make_editor().bulk_delete(["checkout.title", "home.title"])

        assert self._values(backend, "locales/en.json") == {"checkout.button.submit": "Submit"}
        assert self._values(backend, "locales/tr.json") == {}

    def test_edit_and_delete_in_a_compact_file(self, backend, catalog, make_editor):
        backend.add_file("locales/tr.json", '{"checkout.title": "Ödeme", "home.title": ""}\n')
        catalog.scan_all()
        editor = make_editor()

        editor.edit("checkout.title", {"tr": "Ödeme yap"})
        assert self._values(backend, "locales/tr.json") == {
            "checkout.title": "Ödeme yap",
            "home.title": "",
        }

        editor.delete("checkout.title")
        assert self._values(backend, "locales/tr.json") == {"home.title": ""}

    def test_bulk_update_skips_broken_files(self, backend, make_editor, notifier):
        backend.add_file("locales/tr.json", "{ broken")

        make_editor().bulk_update({"home.title": {"en": "Start", "tr": "Başla"}})

        assert self._values(backend, "locales/en.json")["home.title"] == "Start"
        assert len(notifier.warnings) == 1
        assert notifier.warnings[0].startswith("Failed to update tr")
