"""i18n-lens - Keep source code and JSON translation resources consistent."""

__version__ = "0.1.0"

from .config import Config
from .models import (
    FileEvent,
    FileEventType,
    FileKind,
    KeyPresence,
    ResourceFile,
    SourceLocation,
    TextEdit,
)
from .catalog import ResourceCatalog
from .index import LocationIndex
from .events import ChangeNotifier, Debouncer
from .engine import EngineHost, EngineState, ResourceEngine, create_engine
from .editing import TranslationEditor, closest_key

__all__ = [
    "Config",
    "FileEvent",
    "FileEventType",
    "FileKind",
    "KeyPresence",
    "ResourceFile",
    "SourceLocation",
    "TextEdit",
    "ResourceCatalog",
    "LocationIndex",
    "ChangeNotifier",
    "Debouncer",
    "EngineHost",
    "EngineState",
    "ResourceEngine",
    "create_engine",
    "TranslationEditor",
    "closest_key",
]
