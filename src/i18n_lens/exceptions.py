"""Exception types raised by the resource index engine."""


class I18nLensError(Exception):
    """Base class for all i18n-lens errors."""


class ConfigurationError(I18nLensError):
    """Raised when a configured pattern or glob cannot be compiled."""

    def __init__(self, setting: str, value: str, reason: str):
        super().__init__(f"Invalid value for '{setting}' ({value!r}): {reason}")
        self.setting = setting
        self.value = value
        self.reason = reason


class FileAccessError(I18nLensError):
    """Raised when a workspace file cannot be read or written safely."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ResourceParseError(I18nLensError):
    """Raised when a resource file is not a flat JSON object of strings."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid JSON in {path}: {reason}")
        self.path = path
        self.reason = reason
