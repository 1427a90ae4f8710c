"""CLI error handling with actionable hints."""

from typing import NoReturn

import click


class KindlingCliError(click.ClickException):
    """CLI error with an actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise KindlingCliError(
            "OPENAI_API_KEY is not set",
            hint="Export an API key or set embedding.api_key_env in config.toml",
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        """Initialize the error with message and optional hint.

        Args:
            message: The primary error message.
            hint: Optional actionable suggestion for the user.
        """
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present."""
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg


def index_failed_error(repository: str, message: str) -> NoReturn:
    """Raise error when an indexing run failed.

    Raises:
        KindlingCliError: Always raises with a resume hint.
    """
    raise KindlingCliError(
        f"Indexing {repository} failed: {message}",
        hint=f"Fix the cause, then run 'kindling index {repository} --mode resume'",
    )


def repository_not_found_error(repository: str) -> NoReturn:
    """Raise error when a repository has no index state at all.

    Raises:
        KindlingCliError: Always raises with an index hint.
    """
    raise KindlingCliError(
        f"No index found for {repository}",
        hint=f"Run 'kindling index {repository}' to create one",
    )
