"""Protocol definition for workspace file access backends."""

from typing import Callable, Iterator, Protocol, runtime_checkable

from ..models import TextEdit


@runtime_checkable
class FileBackend(Protocol):
    """Protocol for the file I/O the resource index depends on.

    Backends are bound to a workspace root. Every path passed to or
    returned from a backend is a workspace-relative POSIX string, which
    doubles as the file's stable identity in the catalog and index.

    Implementations must handle:
    - Path traversal protection (prevent escaping the workspace)
    - Encoding issues (UTF-8 with error handling)
    - File size limits
    """

    @property
    def workspace(self) -> str:
        """Root path of the workspace this backend is bound to."""
        ...

    def configure(self, ignored_dirs: set[str], max_file_size: int | None) -> None:
        """Replace the walk exclusions and the read size limit.

        Args:
            ignored_dirs: Directory names every walk skips
            max_file_size: Largest readable file in bytes, or None for no limit
        """
        ...

    def read_text(self, path: str) -> str:
        """Read a file's full text.

        Args:
            path: Relative path within the workspace

        Returns:
            File content as a string

        Raises:
            OSError: If the file vanished or cannot be read
            FileAccessError: If the path escapes the workspace or the
                file exceeds the size limit
        """
        ...

    def exists(self, path: str) -> bool:
        """Check if a regular file exists within the workspace."""
        ...

    def walk_files(self, ignore_dirs: set[str] | None = None) -> Iterator[str]:
        """Iterate over every file in the workspace.

        Args:
            ignore_dirs: Directory names to skip (e.g., {'node_modules'})

        Yields:
            Relative file paths within the workspace
        """
        ...

    def find_files(
        self,
        match: Callable[[str], bool],
        ignore_dirs: set[str] | None = None,
    ) -> list[str]:
        """Return the sorted relative paths accepted by ``match``."""
        ...

    def apply_text_edit(self, path: str, edit: TextEdit) -> None:
        """Apply a single text edit to a file and persist it.

        Raises:
            OSError: If the file cannot be read or written
            FileAccessError: If the path escapes the workspace
        """
        ...
