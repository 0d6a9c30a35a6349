"""Backend abstractions for workspace file access.

This module provides pluggable backends for reading and editing files:
- Local filesystem access (default)
- In-memory backends for testing
"""

from .protocol import FileBackend
from .local import LocalFileBackend
from .memory import InMemoryFileBackend

__all__ = ["FileBackend", "LocalFileBackend", "InMemoryFileBackend"]
