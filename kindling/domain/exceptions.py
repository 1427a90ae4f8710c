"""Domain exceptions for Kindling business logic.

These exceptions represent business rule violations and domain-level errors.
They should be caught at the application boundary (CLI) and converted
to appropriate user-facing error messages.
"""


class KindlingDomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class RepositoryNotEmbeddedError(KindlingDomainError):
    """Raised when searching a repository that has no stored chunks.

    Attributes:
        repository: The repository that was requested.
        available: Repositories that currently have an index.
    """

    def __init__(self, repository: str, available: list[str]) -> None:
        self.repository = repository
        self.available = sorted(available)
        if self.available:
            hint = "Available repositories: " + ", ".join(self.available)
        else:
            hint = f"Run 'kindling index {repository}' to build an index first"
        super().__init__(f"Repository '{repository}' has not been embedded", hint=hint)


class RepositoryAccessDeniedError(KindlingDomainError):
    """Raised when a repository is not on the configured allow-list."""

    def __init__(self, repository: str) -> None:
        self.repository = repository
        super().__init__(
            f"Repository '{repository}' is not in the allowed repositories list",
            hint="Add it to search.allowed_repositories in config.toml",
        )
