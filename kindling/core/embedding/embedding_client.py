"""Embedding client turning chunks and queries into vectors.

Wraps an EmbeddingProvider with the rules every caller relies on: oversized
chunks are split to fit the provider's token budget, requests are batched,
and every returned vector must have exactly the configured dimensionality.
"""

import logging

from kindling.core.chunking.block_splitter import split_by_chars
from kindling.core.use_case_errors import ConfigurationError
from kindling.domain.config import EmbeddingConfig
from kindling.domain.entities import Chunk
from kindling.ports.embedders import EmbeddingProvider, EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingDimensionMismatchError(ConfigurationError):
    """Raised when a vector's length differs from the configured dimensionality.

    Cosine similarity is meaningless across dimensionalities, so this is
    fatal rather than a per-item failure.
    """

    def __init__(self, expected: int, actual: int, model: str) -> None:
        self.expected = expected
        self.actual = actual
        message = (
            f"Embedding dimension mismatch: model '{model}' returned {actual} "
            f"dimensions, expected {expected}. Check embedding.dimensions in config."
        )
        super().__init__(message)


class EmbeddingClient:
    """Embeds chunks in sequential batches through an EmbeddingProvider."""

    def __init__(self, provider: EmbeddingProvider, config: EmbeddingConfig | None = None) -> None:
        """Initialize embedding client.

        Args:
            provider: Remote embedding provider.
            config: Batch size, dimensionality and token budget.
        """
        self.provider = provider
        self.config = config or EmbeddingConfig()

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    def prepare(self, chunks: list[Chunk]) -> list[Chunk]:
        """Split chunks whose content exceeds the per-request character budget."""
        max_chars = self.config.max_chars_per_chunk
        prepared: list[Chunk] = []
        for chunk in chunks:
            pieces = split_by_chars(chunk, max_chars)
            if len(pieces) > 1:
                logger.debug(
                    f"Split {chunk.path}:{chunk.metadata.start_line} into "
                    f"{len(pieces)} parts for the token budget"
                )
            prepared.extend(pieces)
        return prepared

    async def embed(self, chunks: list[Chunk]) -> list[Chunk]:
        """Embed chunks, splitting oversized ones first.

        Args:
            chunks: Chunks without embeddings.

        Returns:
            Chunks carrying embeddings. Longer than the input when a chunk
            had to be split.

        Raises:
            EmbeddingProviderError: If a provider request fails.
            EmbeddingDimensionMismatchError: If a vector has the wrong length.
        """
        prepared = self.prepare(chunks)
        embedded: list[Chunk] = []
        batch_size = self.config.batch_size

        for i in range(0, len(prepared), batch_size):
            batch = prepared[i : i + batch_size]
            vectors = await self._request([c.content for c in batch])
            embedded.extend(c.with_embedding(v) for c, v in zip(batch, vectors))

        return embedded

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query with the same dimensionality as chunks."""
        vectors = await self._request([text])
        return vectors[0]

    async def _request(self, texts: list[str]) -> list[list[float]]:
        vectors = await self.provider.embed(texts, self.config.dimensions)
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} inputs"
            )
        for vector in vectors:
            if len(vector) != self.config.dimensions:
                raise EmbeddingDimensionMismatchError(
                    expected=self.config.dimensions,
                    actual=len(vector),
                    model=self.provider.model,
                )
        return vectors
