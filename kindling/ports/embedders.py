"""Embedding provider port for remote text embedding APIs."""

from typing import Protocol


class EmbeddingProviderError(RuntimeError):
    """Raised when the provider rejects or fails a request."""


class EmbeddingProvider(Protocol):
    """Protocol for remote embedding providers.

    One call maps a batch of strings to one vector per input, in order.
    """

    @property
    def model(self) -> str:
        """Model name (e.g., 'text-embedding-3-small')."""
        ...

    async def embed(self, texts: list[str], dimensions: int) -> list[list[float]]:
        """Embed a batch of texts into vectors.

        Args:
            texts: Text strings to embed.
            dimensions: Requested vector length.

        Returns:
            List of embedding vectors, one per input text, same order.

        Raises:
            EmbeddingProviderError: If the request fails.
            ConfigurationError: If credentials are missing or invalid.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
