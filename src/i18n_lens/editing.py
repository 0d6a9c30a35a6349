"""Adding, editing and deleting translations in resource files.

Edits are planned as minimal text changes so a resource file keeps its
own formatting: a new key is inserted next to the existing key it most
resembles, using the indentation, quote style and trailing comma found
in the file. Bulk operations rewrite the whole file as formatted JSON.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace
from difflib import SequenceMatcher
from typing import Callable, Iterable, Optional

from .backends import FileBackend
from .catalog import ResourceCatalog
from .config import Config
from .exceptions import FileAccessError, I18nLensError, ResourceParseError
from .messages import LoggingUserNotifier, UserNotifier
from .models import ResourceFile, TextEdit, split_lines
from .patterns import PatternSet

logger = logging.getLogger(__name__)

_ENTRY_LINE = re.compile(r"^([\t ]*)([\"']).*?(,?)[\t ]*(\r?\n)", re.MULTILINE)


class TranslationAborted(I18nLensError):
    """Raised when an edit is abandoned before anything was written."""


def closest_key(target: str, candidates: Iterable[str]) -> Optional[str]:
    """Pick the existing key a new key should be inserted next to.

    Candidates sharing the longest run of leading dot-separated sections
    with ``target`` win; among those the most similar string is chosen.

    Returns:
        The best candidate, or None if there are no candidates
    """
    sections = target.split(".")
    best_count = 0
    best: list[str] = []
    for candidate in candidates:
        count = 0
        for mine, theirs in zip(sections, candidate.split(".")):
            if mine != theirs:
                break
            count += 1
        if count > best_count:
            best_count = count
            best = []
        if count == best_count:
            best.append(candidate)

    if not best:
        return None
    return max(best, key=lambda candidate: SequenceMatcher(None, target, candidate).ratio())


@dataclass(frozen=True)
class LineStyle:
    """How entries are laid out in a resource file."""

    indent: str = "  "
    quote: str = '"'
    comma: str = ","
    newline: str = "\n"


def sniff_line_style(text: str) -> LineStyle:
    """Read the layout of the first entry line, or the default layout."""
    match = _ENTRY_LINE.search(text)
    if match is None:
        return LineStyle()
    indent, quote, comma, newline = match.groups()
    return LineStyle(indent=indent, quote=quote, comma=comma, newline=newline)


def render_entry(style: LineStyle, key: str, value: str) -> str:
    if style.quote == '"':
        pair = f"{json.dumps(key, ensure_ascii=False)}: {json.dumps(value, ensure_ascii=False)}"
    else:
        pair = f"'{_single_quoted(key)}': '{_single_quoted(value)}'"
    return f"{style.indent}{pair}{style.comma}"


def _single_quoted(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")


def find_key_line(lines: list[str], key: str, patterns: PatternSet) -> Optional[int]:
    """Index of the first line defining ``key``, or None."""
    matcher = patterns.resource_line_matcher()
    for line_number, line in enumerate(lines):
        if any(match.key == key for match in matcher.matches(line)):
            return line_number
    return None


def holds_single_entry(line: str, patterns: PatternSet) -> bool:
    """True if the line is exactly one ``"key": "value"`` entry.

    Lines that also carry a brace or another entry (compact resources)
    cannot be edited line-wise.
    """
    entry = line.strip().rstrip(",").rstrip()
    if not entry or entry[0] not in "\"'" or entry[-1] not in "\"'":
        return False
    return len(list(patterns.resource_line_matcher().matches(line))) == 1


def rewrite_json(text: str, updates: dict[str, Optional[str]], path: str = "") -> Optional[TextEdit]:
    """Rewrite a whole resource with keys set (or removed, for None values).

    Returns:
        The edit, or None if nothing would change

    Raises:
        ResourceParseError: If the current content is not a JSON object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResourceParseError(path, e.msg) from e
    if not isinstance(data, dict):
        raise ResourceParseError(path, "top level is not a JSON object")

    original = dict(data)
    for key, value in updates.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    if data == original and list(data) == list(original):
        return None

    style = sniff_line_style(text)
    content = json.dumps(data, indent=style.indent or 2, ensure_ascii=False)
    return TextEdit.replace_all(text, content.replace("\n", style.newline) + style.newline)


def plan_insert(
    text: str, key: str, value: str, anchor_key: Optional[str], patterns: PatternSet, path: str = ""
) -> tuple[TextEdit, int]:
    """Plan inserting ``key`` right after the line of ``anchor_key``.

    When the anchor cannot be used the file is rewritten instead.

    Returns:
        The edit and the line the new entry ends up on
    """
    lines = split_lines(text)
    anchor_line = find_key_line(lines, anchor_key, patterns) if anchor_key else None

    if anchor_line is not None and holds_single_entry(lines[anchor_line], patterns):
        anchor = lines[anchor_line].rstrip()
        style = sniff_line_style(text)
        has_comma = anchor.endswith(",")
        # The anchor may be the last entry; it then needs the comma instead
        entry = render_entry(replace(style, comma="," if has_comma else ""), key, value)
        new_text = (anchor if has_comma else anchor + ",") + style.newline + entry
        edit = TextEdit(anchor_line, 0, anchor_line, len(lines[anchor_line]), new_text)
        return edit, anchor_line + 1

    edit = rewrite_json(text, {key: value}, path)
    if edit is None:
        raise TranslationAborted(f"'{key}' already has this value in {path}")
    new_lines = split_lines(edit.new_text)
    return edit, find_key_line(new_lines, key, patterns) or 0


def plan_update(
    text: str, key: str, value: str, patterns: PatternSet, path: str = ""
) -> Optional[TextEdit]:
    """Plan replacing the value of an existing key, keeping its line's layout.

    Raises:
        ResourceParseError: If the key shares its line with other content
            and the file has to be rewritten, but is not valid JSON
    """
    lines = split_lines(text)
    line_number = find_key_line(lines, key, patterns)
    if line_number is None:
        return None
    line = lines[line_number]
    if not holds_single_entry(line, patterns):
        return rewrite_json(text, {key: value}, path)
    style = sniff_line_style(line + "\n")
    comma = "," if line.rstrip().endswith(",") else ""
    entry = render_entry(replace(style, comma=comma), key, value)
    return TextEdit(line_number, 0, line_number, len(line), entry)


def plan_delete(text: str, key: str, patterns: PatternSet, path: str = "") -> Optional[TextEdit]:
    """Plan removing the line that defines ``key``.

    Raises:
        ResourceParseError: If the key shares its line with other content
            and the file has to be rewritten, but is not valid JSON
    """
    lines = split_lines(text)
    line_number = find_key_line(lines, key, patterns)
    if line_number is None:
        return None

    line = lines[line_number]
    if not holds_single_entry(line, patterns):
        return rewrite_json(text, {key: None}, path)
    if not line.rstrip().endswith(","):
        previous = line_number - 1
        while previous >= 0 and not lines[previous].strip():
            previous -= 1
        if previous >= 0 and lines[previous].rstrip().endswith(","):
            # Deleting the last entry: its predecessor loses the trailing comma
            comma_column = len(lines[previous].rstrip()) - 1
            return TextEdit(previous, comma_column, line_number, len(line), "")
    return TextEdit(line_number, 0, line_number + 1, 0, "")


def _line_of(key: str, text: str, patterns: PatternSet) -> Optional[int]:
    return find_key_line(split_lines(text), key, patterns)


@dataclass
class AppliedEdit:
    """An edit made (or, without auto-save, staged) for one resource file."""

    path: str
    edit: TextEdit
    applied: bool
    reveal_line: Optional[int] = None


class TranslationEditor:
    """Writes translation changes into the cataloged resource files.

    Usage:
        editor = TranslationEditor.for_engine(engine)
        editor.add("checkout.submit", {"en": "Submit", "tr": "Gönder"})
        editor.edit("checkout.submit", {"tr": "Onayla"})
        editor.delete("checkout.submit")
    """

    def __init__(
        self,
        backend: FileBackend,
        catalog: ResourceCatalog,
        patterns: Callable[[], PatternSet],
        config: Callable[[], Config],
        notifier: Optional[UserNotifier] = None,
    ):
        self._backend = backend
        self._catalog = catalog
        self._patterns = patterns
        self._config = config
        self._notifier = notifier or LoggingUserNotifier()

    @classmethod
    def for_engine(cls, engine) -> "TranslationEditor":
        return cls(
            engine.backend,
            engine.catalog,
            lambda: engine.patterns,
            lambda: engine.config,
            engine.notifier,
        )

    def _read(self, resource: ResourceFile) -> Optional[str]:
        try:
            return self._backend.read_text(resource.path)
        except (FileAccessError, OSError) as e:
            logger.error("Could not read %s: %s", resource.path, e)
            self._notifier.warn(f"Failed to edit {resource.name}: {e}")
            return None

    def _apply(self, path: str, edit: TextEdit, reveal_line: Optional[int]) -> AppliedEdit:
        config = self._config()
        applied = False
        if config.auto_save_after_edit:
            self._backend.apply_text_edit(path, edit)
            applied = True
        return AppliedEdit(
            path=path,
            edit=edit,
            applied=applied,
            reveal_line=reveal_line if config.auto_focus_after_edit else None,
        )

    def commit(self, edits: list[AppliedEdit]) -> list[AppliedEdit]:
        """Write staged edits that auto-save left unapplied."""
        for edit in edits:
            if not edit.applied:
                self._backend.apply_text_edit(edit.path, edit.edit)
                edit.applied = True
        return edits

    def add(
        self,
        key: str,
        translations: dict[str, str],
        languages: Optional[list[str]] = None,
    ) -> list[AppliedEdit]:
        """Add a key to the resources that lack it.

        Args:
            key: The translation key
            translations: Display name -> translated text
            languages: Languages that must be supplied (default: every
                resource currently missing the key)

        Raises:
            TranslationAborted: If any required language has no text; nothing
                is written in that case
        """
        required = languages if languages is not None else self._catalog.find_by_key_existence(key).missing
        absent = [name for name in required if not translations.get(name)]
        if absent:
            raise TranslationAborted(f"No translation given for {', '.join(absent)}")

        patterns = self._patterns()
        results = []
        for resource in self._catalog.get_all():
            value = translations.get(resource.name)
            if not value:
                continue
            text = self._read(resource)
            if text is None:
                continue
            try:
                if key in resource.values:
                    edit = plan_update(text, key, value, patterns, resource.path)
                    if edit is None:
                        continue
                    reveal = _line_of(key, edit.apply(text), patterns)
                else:
                    anchor = closest_key(key, resource.values)
                    edit, reveal = plan_insert(text, key, value, anchor, patterns, resource.path)
                results.append(self._apply(resource.path, edit, reveal))
            except (ResourceParseError, TranslationAborted, OSError) as e:
                logger.error("Could not add '%s' to %s: %s", key, resource.path, e)
                self._notifier.warn(f"Failed to add '{key}' to {resource.name}: {e}")
        return results

    def edit(self, key: str, translations: dict[str, str]) -> list[AppliedEdit]:
        """Change existing translations; unchanged values are left alone."""
        patterns = self._patterns()
        results = []
        for resource in self._catalog.get_all():
            value = translations.get(resource.name)
            if not value or key not in resource.values or resource.values[key] == value:
                continue
            text = self._read(resource)
            if text is None:
                continue
            try:
                edit = plan_update(text, key, value, patterns, resource.path)
            except ResourceParseError as e:
                self._notifier.warn(f"Failed to edit '{key}' in {resource.name}: {e.reason}")
                continue
            if edit is None:
                logger.warning("'%s' not found in the text of %s", key, resource.path)
                continue
            results.append(self._apply(resource.path, edit, _line_of(key, edit.apply(text), patterns)))
        if not results:
            logger.info("No changes were made to translations of '%s'", key)
        return results

    def delete(self, key: str) -> list[AppliedEdit]:
        """Remove the line defining ``key`` from every resource file."""
        patterns = self._patterns()
        results = []
        for resource in self._catalog.get_all():
            text = self._read(resource)
            if text is None:
                continue
            try:
                edit = plan_delete(text, key, patterns, resource.path)
            except ResourceParseError as e:
                self._notifier.warn(f"Failed to delete '{key}' from {resource.name}: {e.reason}")
                continue
            if edit is not None:
                results.append(self._apply(resource.path, edit, None))
        return results

    def bulk_update(self, data: dict[str, dict[str, str]]) -> list[AppliedEdit]:
        """Set many keys at once from ``{key: {language: text}}``.

        Empty texts are ignored. Each touched file is rewritten as
        formatted JSON.
        """
        return self._bulk(
            lambda resource: {
                key: values[resource.name]
                for key, values in data.items()
                if values.get(resource.name)
            }
        )

    def bulk_delete(self, keys: Iterable[str]) -> list[AppliedEdit]:
        keys = list(keys)
        return self._bulk(lambda resource: {key: None for key in keys if key in resource.values})

    def _bulk(self, updates_for: Callable[[ResourceFile], dict[str, Optional[str]]]) -> list[AppliedEdit]:
        results = []
        for resource in self._catalog.get_all():
            updates = updates_for(resource)
            if not updates:
                continue
            text = self._read(resource)
            if text is None:
                continue
            try:
                edit = rewrite_json(text, updates, resource.path)
            except ResourceParseError as e:
                self._notifier.warn(f"Failed to update {resource.name}: {e.reason}")
                continue
            if edit is not None:
                logger.info("Updating %d key(s) in %s", len(updates), resource.name)
                results.append(self._apply(resource.path, edit, None))
        return results
