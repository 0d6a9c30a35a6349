"""Configuration management for i18n-lens."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

load_dotenv()


SETTINGS_FILENAME = ".i18n-lens.yaml"
ENV_PREFIX = "I18N_LENS_"

DEFAULT_RESOURCE_GLOB = "**/locales/*.json"

# Quoted key immediately followed by a colon, e.g. `"checkout.submit": ...`
DEFAULT_RESOURCE_LINE_REGEX = r"""(?<=["'])(?P<key>[\w\-.]+(?: +[\w\-.]+)*)(?=["']\s*:)"""

# `t("key")`, `i18n.t('key')` or `/** @i18n */ "key"`
DEFAULT_CODE_REFERENCE_REGEX = (
    r"""(?:/\*\*\s*@i18n\s*\*/\s*|(?<!\w)[tT]\(\s*)["'](?P<key>[A-Za-z0-9 .\-_]+?)["']"""
)

DEFAULT_CODE_FILE_REGEX = r"^(?!(?:.*/)?node_modules/).*\.(?:jsx?|tsx?)$"

DEFAULT_IGNORED_DIRS = [
    "node_modules",
    ".git",
    "dist",
    "build",
    ".venv",
    "__pycache__",
]

# Settings whose change requires re-reading part of the workspace
RESCAN_CONCERNS = {
    "resource_glob": "resource_glob",
    "resource_line_regex": "resource_line_regex",
    "code_reference_regex": "code_reference_regex",
    "code_file_regex": "code_file_regex",
    "ignored_dirs": "ignore",
    "respect_gitignore": "ignore",
    "max_file_size": "ignore",
}


class Config(BaseModel):
    """Application configuration."""

    # Patterns
    resource_glob: str = Field(default=DEFAULT_RESOURCE_GLOB)
    resource_line_regex: str = Field(default=DEFAULT_RESOURCE_LINE_REGEX)
    code_reference_regex: str = Field(default="")
    code_file_regex: str = Field(default=DEFAULT_CODE_FILE_REGEX)

    # Scanner Settings
    ignored_dirs: list[str] = Field(default_factory=lambda: DEFAULT_IGNORED_DIRS.copy())
    respect_gitignore: bool = Field(default=True)
    max_file_size: int = Field(default=1_000_000)  # 1MB
    debounce_seconds: float = Field(default=0.5)

    # Display and edit toggles
    underline_decorator_enabled: bool = Field(default=True)
    codelens_enabled: bool = Field(default=True)
    auto_save_after_edit: bool = Field(default=True)
    auto_focus_after_edit: bool = Field(default=False)
    reveal_in_tree_view: bool = Field(default=False)

    @classmethod
    def from_env(cls, base: Optional["Config"] = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            base: Configuration whose values are used where no variable is set

        Returns:
            A new Config with environment overrides applied
        """
        def _parse_bool(value: Optional[str], fallback: bool) -> bool:
            if value is None:
                return fallback
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            return fallback

        def _parse_int(value: Optional[str], fallback: int) -> int:
            try:
                return int(value) if value is not None else fallback
            except ValueError:
                return fallback

        def _parse_float(value: Optional[str], fallback: float) -> float:
            try:
                return float(value) if value is not None else fallback
            except ValueError:
                return fallback

        def env(name: str) -> Optional[str]:
            return os.getenv(ENV_PREFIX + name)

        base = base or cls()

        ignored_dirs = list(base.ignored_dirs)
        extra_ignored = env("IGNORED_DIRS")
        if extra_ignored:
            ignored_dirs.extend(
                [entry.strip() for entry in extra_ignored.split(",") if entry.strip()]
            )

        return cls(
            resource_glob=env("RESOURCE_GLOB") or base.resource_glob,
            resource_line_regex=env("RESOURCE_LINE_REGEX") or base.resource_line_regex,
            code_reference_regex=env("CODE_REFERENCE_REGEX") or base.code_reference_regex,
            code_file_regex=env("CODE_FILE_REGEX") or base.code_file_regex,
            ignored_dirs=ignored_dirs,
            respect_gitignore=_parse_bool(env("RESPECT_GITIGNORE"), base.respect_gitignore),
            max_file_size=_parse_int(env("MAX_FILE_SIZE"), base.max_file_size),
            debounce_seconds=_parse_float(env("DEBOUNCE_SECONDS"), base.debounce_seconds),
            underline_decorator_enabled=_parse_bool(
                env("UNDERLINE_DECORATOR"), base.underline_decorator_enabled
            ),
            codelens_enabled=_parse_bool(env("CODELENS"), base.codelens_enabled),
            auto_save_after_edit=_parse_bool(env("AUTO_SAVE"), base.auto_save_after_edit),
            auto_focus_after_edit=_parse_bool(env("AUTO_FOCUS"), base.auto_focus_after_edit),
            reveal_in_tree_view=_parse_bool(env("REVEAL_TREE_VIEW"), base.reveal_in_tree_view),
        )

    @classmethod
    def from_file(cls, path: Path) -> "Config":
        """Load configuration from a YAML (or JSON) settings file.

        A missing file yields the defaults. Unknown keys are ignored and a
        file that cannot be parsed or validated falls back to the defaults
        with a logged warning.
        """
        if not path.exists():
            return cls()

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read settings file %s: %s", path, e)
            return cls()

        if not isinstance(raw, dict):
            logger.warning("Settings file %s is not a mapping, using defaults", path)
            return cls()

        known = {name: value for name, value in raw.items() if name in cls.model_fields}
        try:
            return cls(**known)
        except ValidationError as e:
            logger.warning("Invalid settings in %s, using defaults: %s", path, e)
            return cls()

    @classmethod
    def load(cls, workspace: Path) -> "Config":
        """Defaults, then the workspace settings file, then the environment."""
        return cls.from_env(base=cls.from_file(Path(workspace) / SETTINGS_FILENAME))

    def diff(self, other: "Config") -> set[str]:
        """Return the rescan concerns that differ between two configurations.

        Toggle-only differences are reported as ``"display"``.
        """
        changed: set[str] = set()
        for name in type(self).model_fields:
            if getattr(self, name) == getattr(other, name):
                continue
            changed.add(RESCAN_CONCERNS.get(name, "display"))
        return changed
