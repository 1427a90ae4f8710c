"""Tests for Rich progress reporting."""

from io import StringIO
from unittest.mock import MagicMock

from rich.console import Console

from kindling.core.progress import RichProgressCallback, progress_context


def test_quiet_mode_yields_none() -> None:
    with progress_context(quiet_mode=True) as progress:
        assert progress is None


def test_callback_drives_a_task() -> None:
    progress = MagicMock()
    progress.add_task.return_value = 7
    callback = RichProgressCallback(progress)

    callback.on_progress(1, "ignored before start")
    callback.on_start(3, "Indexing o/r")
    callback.on_progress(2, "src/a.ts")
    callback.on_complete()

    progress.add_task.assert_called_once_with("Indexing o/r", total=3, current_file="")
    progress.update.assert_called_once_with(7, completed=2, current_file="src/a.ts")
    progress.remove_task.assert_called_once_with(7)
    assert callback.task_id is None


def test_progress_context_renders_to_given_console() -> None:
    console = Console(file=StringIO(), force_terminal=False)

    with progress_context(console=console) as callback:
        assert isinstance(callback, RichProgressCallback)
        callback.on_start(2, "Indexing")
        callback.on_progress(1, "a.ts")
        callback.on_complete()
