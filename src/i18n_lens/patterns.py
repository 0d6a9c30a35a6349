"""Compiled key-extraction patterns and file classification."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from typing import Iterator, NamedTuple, Optional

from pathspec import GitIgnoreSpec, PathSpec

from .config import (
    Config,
    DEFAULT_CODE_FILE_REGEX,
    DEFAULT_CODE_REFERENCE_REGEX,
    DEFAULT_RESOURCE_GLOB,
    DEFAULT_RESOURCE_LINE_REGEX,
)
from .exceptions import ConfigurationError
from .messages import LoggingUserNotifier, UserNotifier
from .models import split_lines

logger = logging.getLogger(__name__)

KEY_GROUP = "key"

# JavaScript-style `(?<name>...)`; lookbehinds `(?<=` and `(?<!` are left alone
_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<([A-Za-z_]\w*)>")


class KeyMatch(NamedTuple):
    """One key occurrence within a single line."""

    key: str
    start: int
    end: int


class LineMatcher:
    """Finds every key occurrence in a line, left to right.

    The compiled pattern is an immutable template; the search cursor lives
    inside each :meth:`matches` call, so one matcher can be used by any
    number of scans without them disturbing each other.
    """

    def __init__(self, pattern: re.Pattern):
        self.pattern = pattern
        self._has_key_group = KEY_GROUP in pattern.groupindex

    def _key_of(self, match: re.Match) -> tuple[str, int]:
        if self._has_key_group and match.group(KEY_GROUP) is not None:
            return match.group(KEY_GROUP), match.start(KEY_GROUP)
        return match.group(0), match.start()

    def matches(self, line: str) -> Iterator[KeyMatch]:
        pos = 0
        while pos <= len(line):
            match = self.pattern.search(line, pos)
            if match is None:
                break
            key, start = self._key_of(match)
            if key:
                yield KeyMatch(key, start, start + len(key))
            # Zero-length matches must still move the cursor forward
            pos = match.end() if match.end() > match.start() else match.end() + 1

    def first(self, line: str) -> Optional[KeyMatch]:
        return next(self.matches(line), None)

    def scan(self, text: str) -> Iterator[tuple[int, KeyMatch]]:
        """Yield ``(line_number, match)`` for every occurrence in ``text``."""
        for line_number, line in enumerate(split_lines(text)):
            for match in self.matches(line):
                yield line_number, match


def translate_named_groups(pattern: str) -> str:
    """Accept JavaScript named-group syntax by rewriting it for ``re``."""
    return _JS_NAMED_GROUP.sub(r"(?P<\1>", pattern)


def compile_regex(setting: str, value: str) -> re.Pattern:
    """Compile a user-supplied regular expression.

    Raises:
        ConfigurationError: If the pattern is empty or does not compile
    """
    if not value:
        raise ConfigurationError(setting, value, "no pattern configured")
    try:
        return re.compile(translate_named_groups(value))
    except re.error as e:
        raise ConfigurationError(setting, value, str(e)) from e


def expand_braces(glob: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, which gitignore syntax lacks.

    ``**/{locales,i18n}/*.json`` becomes ``**/locales/*.json`` and
    ``**/i18n/*.json``. Nested groups are expanded too.

    Raises:
        ValueError: If the braces are unbalanced
    """
    start = glob.find("{")
    if start < 0:
        if "}" in glob:
            raise ValueError("unbalanced '}'")
        return [glob]

    depth = 0
    options = []
    option_start = start + 1
    for position in range(start, len(glob)):
        char = glob[position]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                options.append(glob[option_start:position])
                end = position
                break
        elif char == "," and depth == 1:
            options.append(glob[option_start:position])
            option_start = position + 1
    else:
        raise ValueError("unbalanced '{'")

    if "}" in glob[:start]:
        raise ValueError("unbalanced '}'")
    prefix, suffix = glob[:start], glob[end + 1 :]
    expanded = []
    for option in options:
        for alternative in expand_braces(option):
            expanded.extend(expand_braces(prefix + alternative + suffix))
    return expanded


def compile_glob(setting: str, value: str) -> PathSpec:
    """Compile a gitignore-style glob, with ``{a,b}`` alternatives.

    Raises:
        ConfigurationError: If the glob is empty, a negation, or cannot
            be parsed
    """
    if not value or not value.strip():
        raise ConfigurationError(setting, value, "no glob configured")
    glob = value.strip()
    if glob.startswith("!"):
        raise ConfigurationError(setting, value, "a negated glob matches no files")
    try:
        return GitIgnoreSpec.from_lines(expand_braces(glob))
    except (ValueError, TypeError) as e:
        raise ConfigurationError(setting, value, str(e)) from e


class PatternSet:
    """The live set of patterns used to classify files and extract keys.

    Invalid settings never raise: each is replaced by its built-in default
    and the user is warned.
    """

    def __init__(
        self,
        config: Config,
        notifier: Optional[UserNotifier] = None,
        gitignore: Optional[PathSpec] = None,
    ):
        self.config = config
        self._notifier = notifier or LoggingUserNotifier()
        self.gitignore = gitignore
        self.ignored_dirs: set[str] = set(config.ignored_dirs)

        self.resource_glob, self._resource_spec = self._glob_or_default(
            "resource_glob", config.resource_glob, DEFAULT_RESOURCE_GLOB
        )
        self._resource_line = self._regex_or_default(
            "resource_line_regex", config.resource_line_regex, DEFAULT_RESOURCE_LINE_REGEX
        )
        self._code_reference = self._regex_or_default(
            "code_reference_regex", config.code_reference_regex, DEFAULT_CODE_REFERENCE_REGEX
        )
        self._code_file = self._regex_or_default(
            "code_file_regex", config.code_file_regex, DEFAULT_CODE_FILE_REGEX
        )

    def _regex_or_default(self, setting: str, value: str, default: str) -> re.Pattern:
        try:
            pattern = compile_regex(setting, value)
        except ConfigurationError as e:
            self._notifier.warn(f"{e}. Using the built-in default.")
            return re.compile(default)
        logger.info("Using %s: %s", setting, value)
        return pattern

    def _glob_or_default(self, setting: str, value: str, default: str) -> tuple[str, PathSpec]:
        try:
            spec = compile_glob(setting, value)
        except ConfigurationError as e:
            self._notifier.warn(f"{e}. Using the built-in default.")
            return default, compile_glob(setting, default)
        logger.info("Using %s: %s", setting, value)
        return value, spec

    def resource_line_matcher(self) -> LineMatcher:
        return LineMatcher(self._resource_line)

    def code_reference_matcher(self) -> LineMatcher:
        return LineMatcher(self._code_reference)

    def code_file_pattern(self) -> re.Pattern:
        return self._code_file

    def resource_spec(self) -> PathSpec:
        return self._resource_spec

    def in_ignored_dir(self, path: str) -> bool:
        return any(part in self.ignored_dirs for part in PurePosixPath(path).parts[:-1])

    def is_gitignored(self, path: str) -> bool:
        return bool(self.gitignore and self.gitignore.match_file(path))

    def is_resource_file(self, path: str) -> bool:
        """Check a workspace-relative POSIX path against the resource glob."""
        if not path or self.in_ignored_dir(path):
            return False
        return self._resource_spec.match_file(path)

    def is_code_file(self, path: str) -> bool:
        """Check a workspace-relative POSIX path against the code-file test."""
        if not path or self.in_ignored_dir(path) or self.is_gitignored(path):
            return False
        return self._code_file.search(path) is not None


def load_gitignore(text: Optional[str]) -> Optional[PathSpec]:
    """Build a PathSpec from .gitignore content, or None when there is none."""
    if not text:
        return None
    patterns = text.splitlines()
    if not patterns:
        return None
    return GitIgnoreSpec.from_lines(patterns)
