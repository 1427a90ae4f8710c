"""Progress reporting protocol for long-running operations.

Defines callback interface for reporting progress during indexing.
"""

from typing import Protocol


class ProgressCallback(Protocol):
    """Protocol for progress reporting callbacks.

    Implementations can use this to provide visual progress feedback during
    indexing, without the core use cases depending on specific UI libraries.
    """

    def on_start(self, total: int, description: str) -> None:
        """Called when the file list is known.

        Args:
            total: Total number of files to process.
            description: Description of the operation.
        """
        ...

    def on_progress(self, current: int, item_description: str | None = None) -> None:
        """Called after each processed file.

        Args:
            current: Files processed so far.
            item_description: Path of the file just processed.
        """
        ...

    def on_complete(self) -> None:
        """Called when the operation ends."""
        ...
