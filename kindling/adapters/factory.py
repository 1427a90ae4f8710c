"""Factory classes for use case and adapter instantiation.

This module centralizes the creation of use cases and their dependencies,
keeping the CLI layer free from direct adapter imports. Adapters are imported
lazily so that, for example, the redis client is only loaded when the redis
backend is selected.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kindling.adapters.config.toml_config_provider import TomlConfigProvider
    from kindling.core.embedding.embedding_client import EmbeddingClient
    from kindling.core.indexing.index_job import IndexingJob
    from kindling.core.retrieval.search_engine import SearchEngine
    from kindling.core.status.status_usecase import StatusUseCase
    from kindling.domain.config import (
        EmbeddingConfig,
        KindlingConfig,
        SourceConfig,
        StoreConfig,
    )
    from kindling.ports.kv_store import KeyValueStore
    from kindling.ports.source import SourceProvider


class ConfigFactory:
    """Factory for creating configuration-related instances."""

    def create_config_provider(self) -> TomlConfigProvider:
        from kindling.adapters.config.toml_config_provider import TomlConfigProvider

        return TomlConfigProvider()


class StoreFactory:
    """Factory for the key-value store backend named in config."""

    def create_kv_store(self, config: StoreConfig, kindling_dir: Path) -> KeyValueStore:
        """Create the configured key-value store.

        Args:
            config: Store configuration.
            kindling_dir: Directory that relative sqlite paths resolve against.

        Returns:
            Redis, SQLite or in-memory KeyValueStore.
        """
        if config.backend == "redis":
            from kindling.adapters.kv.redis_store import RedisKeyValueStore

            url = os.environ.get(config.redis_url_env) or config.redis_url
            return RedisKeyValueStore.from_url(url)

        if config.backend == "memory":
            from kindling.adapters.kv.memory_store import MemoryKeyValueStore

            return MemoryKeyValueStore()

        from kindling.adapters.kv.sqlite_store import SQLiteKeyValueStore

        db_path = Path(config.sqlite_path).expanduser()
        if not db_path.is_absolute():
            db_path = kindling_dir / db_path
        return SQLiteKeyValueStore(db_path)


class SourceFactory:
    """Factory for the source provider named in config."""

    def create_source(self, config: SourceConfig) -> SourceProvider:
        """Create the configured source provider.

        Raises:
            SourceProviderError: If the git provider's path is not a repository.
        """
        if config.provider == "git":
            from kindling.adapters.source.git_source import GitSourceProvider

            return GitSourceProvider(Path(config.local_path or ".").expanduser())

        from kindling.adapters.source.github_source import GitHubSourceProvider

        return GitHubSourceProvider.from_env(config)


class EmbeddingFactory:
    """Factory for the embedding client."""

    def create_embedding_client(self, config: EmbeddingConfig) -> EmbeddingClient:
        """Create an EmbeddingClient over the OpenAI-compatible provider.

        Raises:
            ConfigurationError: If the API key environment variable is unset.
        """
        from kindling.adapters.embedding.openai_provider import OpenAIEmbeddingProvider
        from kindling.core.embedding.embedding_client import EmbeddingClient

        return EmbeddingClient(OpenAIEmbeddingProvider.from_env(config), config)


class UseCaseFactory:
    """Factory for creating use case instances with all dependencies."""

    def create_indexing_job(
        self,
        config: KindlingConfig,
        kv: KeyValueStore,
        source: SourceProvider,
        embedding_client: EmbeddingClient,
    ) -> IndexingJob:
        """Create an IndexingJob with the regex chunker and a chunk store."""
        from kindling.adapters.parsers.regex_boundary_detector import select_detector
        from kindling.core.chunking.semantic_chunker import SemanticChunker
        from kindling.core.indexing.chunk_store import ChunkStore
        from kindling.core.indexing.index_job import IndexingJob

        return IndexingJob(
            source=source,
            chunker=SemanticChunker(select_detector, config.index),
            embedding_client=embedding_client,
            store=ChunkStore(kv),
            config=config.index,
        )

    def create_search_engine(
        self,
        config: KindlingConfig,
        kv: KeyValueStore,
        embedding_client: EmbeddingClient,
    ) -> SearchEngine:
        from kindling.core.indexing.chunk_store import ChunkStore
        from kindling.core.retrieval.search_engine import SearchEngine

        return SearchEngine(ChunkStore(kv), embedding_client, config.search)

    def create_status_usecase(self, kv: KeyValueStore) -> StatusUseCase:
        from kindling.core.indexing.chunk_store import ChunkStore
        from kindling.core.status.status_usecase import StatusUseCase

        return StatusUseCase(ChunkStore(kv))
