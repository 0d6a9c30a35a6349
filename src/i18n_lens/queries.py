"""Read-only queries that editor features build on.

Decorations, code lenses, hovers, completion and the tree view all read
the catalog and index through these helpers rather than poking at their
internals.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .catalog import ResourceCatalog
from .index import LocationIndex
from .models import SourceLocation, split_lines
from .patterns import KeyMatch, PatternSet

_TURKISH_TO_ASCII = str.maketrans("şŞıİüÜğĞöÖçÇ", "sSiIuUgGoOcC")
_NOT_ACCEPTED = re.compile(r"[^A-Za-z0-9\\\[\] \-_]")


def normalize_string(value: str) -> str:
    """Fold Turkish letters to ASCII and drop other unsupported characters."""
    return _NOT_ACCEPTED.sub("", value.translate(_TURKISH_TO_ASCII))


def find_key_in_line(patterns: PatternSet, line: str) -> Optional[KeyMatch]:
    """First resource key defined on a line of a resource file."""
    return patterns.resource_line_matcher().first(line)


def keys_in_text(patterns: PatternSet, text: str) -> list[str]:
    """Distinct keys referenced in a code document, in order of appearance."""
    seen: dict[str, None] = {}
    for _, match in patterns.code_reference_matcher().scan(text):
        seen.setdefault(match.key, None)
    return list(seen)


@dataclass
class MissingTranslation:
    """A key reference in a document that some resources don't translate."""

    key: str
    line: int
    start: int
    end: int
    missing: list[str] = field(default_factory=list)


def missing_in_text(
    catalog: ResourceCatalog, patterns: PatternSet, text: str
) -> list[MissingTranslation]:
    """Every key reference in ``text`` lacking a translation somewhere."""
    results = []
    for line_number, match in patterns.code_reference_matcher().scan(text):
        missing = catalog.find_by_key_existence(match.key).missing
        if missing:
            results.append(
                MissingTranslation(match.key, line_number, match.start, match.end, missing)
            )
    return results


def is_used(index: LocationIndex, patterns: PatternSet, key: str) -> bool:
    """True if the key appears anywhere outside resource files."""
    return any(not patterns.is_resource_file(loc.path) for loc in index.get_locations(key))


def unused_keys(index: LocationIndex, patterns: PatternSet, path: str) -> list[str]:
    """Keys located in a resource file that no code file references."""
    return [key for key in index.get_keys_at_file(path) if not is_used(index, patterns, key)]


def unused_lines(
    index: LocationIndex, patterns: PatternSet, path: str, text: str
) -> list[int]:
    """Line numbers of a resource document whose key is never referenced."""
    matcher = patterns.resource_line_matcher()
    lines = []
    for line_number, line in enumerate(split_lines(text)):
        match = matcher.first(line)
        if match and not is_used(index, patterns, match.key):
            lines.append(line_number)
    return lines


def describe(catalog: ResourceCatalog, key: str) -> dict[str, Optional[str]]:
    """Per-language value of a key; None where it is missing."""
    return {
        resource.name: resource.values.get(key) or None for resource in catalog.get_all()
    }


@dataclass
class CompletionItem:
    key: str
    values: dict[str, str]
    filter_text: str

    @property
    def detail(self) -> str:
        return ", ".join(f"{name}: {value}" for name, value in self.values.items())


def complete(catalog: ResourceCatalog, fragment: str) -> list[CompletionItem]:
    """Keys whose name or normalized translations contain ``fragment``.

    Items are sorted by their filter text, the same text the match is
    made against.
    """
    merged: dict[str, dict[str, str]] = {}
    for resource in catalog.get_all():
        for key, value in resource.values.items():
            merged.setdefault(key, {})[resource.name] = value

    needle = fragment.lower()
    items = []
    for key, values in merged.items():
        normalized = [normalize_string(value).lower() for value in values.values()]
        filter_text = ".".join([key, *normalized])
        if needle in filter_text:
            items.append(CompletionItem(key, values, filter_text))
    return sorted(items, key=lambda item: item.filter_text)


def sorted_locations(locations: list[SourceLocation]) -> list[SourceLocation]:
    """Locations ordered by file, then line, then column."""
    return sorted(locations, key=lambda loc: (loc.path, loc.line, loc.start))
