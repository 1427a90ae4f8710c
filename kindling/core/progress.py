"""Progress reporting for CLI commands.

Rich progress bars driven by the ProgressCallback protocol. The bar shows
files done out of the total and the time elapsed in the run.
"""

from collections.abc import Generator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)


class RichProgressCallback:
    """Rich-based progress callback showing files indexed out of the total."""

    def __init__(self, progress: Progress) -> None:
        """Initialize with a Rich Progress instance.

        Args:
            progress: Rich Progress instance to use for display.
        """
        self.progress = progress
        self.task_id: int | None = None

    def on_start(self, total: int, description: str) -> None:
        """Create the progress bar."""
        self.task_id = self.progress.add_task(description, total=total, current_file="")

    def on_progress(self, current: int, item_description: str | None = None) -> None:
        """Advance to ``current`` and show the file just handled."""
        if self.task_id is not None:
            self.progress.update(
                self.task_id, completed=current, current_file=item_description or ""
            )

    def on_complete(self) -> None:
        """Remove the bar."""
        if self.task_id is not None:
            self.progress.remove_task(self.task_id)
            self.task_id = None


@contextmanager
def progress_context(
    quiet_mode: bool = False, console: Console | None = None
) -> Generator[RichProgressCallback | None, None, None]:
    """Context manager for creating progress bars.

    Args:
        quiet_mode: If True, yields None (no progress reporting).
        console: Console to draw on; defaults to stderr so stdout stays clean.

    Yields:
        RichProgressCallback if not quiet, None otherwise.
    """
    if quiet_mode:
        yield None
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("[cyan]{task.fields[current_file]}"),
        console=console or Console(stderr=True),
        transient=True,
    ) as progress:
        yield RichProgressCallback(progress)
