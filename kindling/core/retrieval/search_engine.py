"""Search engine scoring stored chunks against a query.

Brute-force cosine similarity over a repository's chunk list. The list is read
in fixed-size pages because the store limits how much one request may return,
and pages are fetched with bounded concurrency so large repositories do not
open unbounded numbers of requests.

Search steps:
1. Validate the query and clamp the limit
2. Check the repository is allowed and has at least one stored chunk
3. Embed the query
4. Fetch and score pages, at most ``concurrency`` at once
5. Merge, collapse duplicates, sort and truncate
"""

import asyncio
import logging

from kindling.core.embedding.embedding_client import EmbeddingClient
from kindling.core.indexing.chunk_store import ChunkStore
from kindling.core.retrieval.similarity import cosine_similarity
from kindling.domain.config import SearchConfig
from kindling.domain.entities import Chunk, Query, SearchResult, SearchResultSet
from kindling.domain.exceptions import RepositoryAccessDeniedError, RepositoryNotEmbeddedError
from kindling.domain.value_objects import PathFilter

logger = logging.getLogger(__name__)


class SearchEngine:
    """Paginated, bounded-concurrency semantic search over stored chunks."""

    def __init__(
        self,
        store: ChunkStore,
        embedding_client: EmbeddingClient,
        config: SearchConfig | None = None,
    ) -> None:
        """Initialize search engine.

        Args:
            store: Chunk store to read chunks from.
            embedding_client: Client for embedding the query.
            config: Limits, threshold, page size and concurrency.
        """
        self.store = store
        self.embedding_client = embedding_client
        self.config = config or SearchConfig()

    def effective_limit(self, limit: int | None) -> int:
        """Default a missing limit and cap it at the configured maximum."""
        if limit is None:
            return self.config.default_limit
        return min(limit, self.config.max_limit)

    async def search(self, query: Query, threshold: float | None = None) -> SearchResultSet:
        """Find the chunks most similar to a query.

        Args:
            query: Repository, text, optional limit and optional path filter.
            threshold: Override of the configured similarity threshold.

        Returns:
            Results scoring strictly above the threshold, best first.

        Raises:
            RepositoryAccessDeniedError: If an allow-list excludes the repository.
            RepositoryNotEmbeddedError: If the repository has no stored chunks.
        """
        repository = query.repository
        limit = self.effective_limit(query.limit)
        threshold = self.config.similarity_threshold if threshold is None else threshold

        allowed = self.config.allowed_repositories
        if allowed and repository not in allowed:
            raise RepositoryAccessDeniedError(repository)

        total = await self.store.count_chunks(repository)
        if total == 0:
            raise RepositoryNotEmbeddedError(repository, await self.store.list_repositories())

        status = await self.store.get_status(repository)
        if status is None:
            logger.info(f"{repository} has chunks but no readable status; searching anyway")

        query_vector = await self.embedding_client.embed_query(query.text)

        page_size = self.config.page_size
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def score_page(offset: int) -> tuple[list[SearchResult], int, int]:
            async with semaphore:
                page = await self.store.list_chunks_page(repository, offset, page_size)
            results, skipped = self._score(page.chunks, query_vector, query.path_filter, threshold)
            return results, skipped + len(page.invalid), page.raw_count

        pages = await asyncio.gather(*(score_page(o) for o in range(0, total, page_size)))

        result_set = SearchResultSet()
        best: dict[str, SearchResult] = {}
        for results, skipped, raw_count in pages:
            result_set.scanned_chunks += raw_count
            result_set.skipped_chunks += skipped
            for result in results:
                current = best.get(result.chunk.id)
                if current is None or result.score > current.score:
                    best[result.chunk.id] = result

        ranked = sorted(
            best.values(),
            key=lambda r: (-r.score, r.chunk.path, r.chunk.metadata.start_line),
        )
        result_set.results = ranked[:limit]

        logger.debug(
            f"Search in {repository}: scanned {result_set.scanned_chunks}, "
            f"skipped {result_set.skipped_chunks}, returned {result_set.total_results}"
        )
        return result_set

    def _score(
        self,
        chunks: list[Chunk],
        query_vector: list[float],
        path_filter: PathFilter | None,
        threshold: float,
    ) -> tuple[list[SearchResult], int]:
        """Score one page of chunks.

        Returns:
            Tuple of (results above threshold, chunks skipped for missing or
            mismatched embeddings).
        """
        results = []
        skipped = 0
        dimensions = len(query_vector)
        for chunk in chunks:
            if path_filter is not None and not path_filter.matches(chunk.path):
                continue
            if chunk.embedding is None:
                skipped += 1
                continue
            if len(chunk.embedding) != dimensions:
                logger.warning(
                    f"Skipping {chunk.path}:{chunk.metadata.start_line}: embedding has "
                    f"{len(chunk.embedding)} dimensions, query has {dimensions}"
                )
                skipped += 1
                continue
            score = cosine_similarity(query_vector, chunk.embedding)
            if score > threshold:
                results.append(SearchResult(chunk=chunk, score=score))
        return results, skipped
