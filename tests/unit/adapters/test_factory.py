"""Unit tests for the factory module.

Tests the factory classes that centralize adapter instantiation,
ensuring clean architecture separation between CLI and adapters.
"""

from pathlib import Path

import pytest

from kindling.adapters.config.toml_config_provider import TomlConfigProvider
from kindling.adapters.embedding.openai_provider import OpenAIEmbeddingProvider
from kindling.adapters.factory import (
    ConfigFactory,
    EmbeddingFactory,
    SourceFactory,
    StoreFactory,
    UseCaseFactory,
)
from kindling.adapters.kv.memory_store import MemoryKeyValueStore
from kindling.adapters.kv.redis_store import RedisKeyValueStore
from kindling.adapters.kv.sqlite_store import SQLiteKeyValueStore
from kindling.adapters.source.git_source import GitSourceProvider
from kindling.adapters.source.github_source import GitHubSourceProvider
from kindling.core.indexing.index_job import IndexingJob
from kindling.core.retrieval.search_engine import SearchEngine
from kindling.core.status.status_usecase import StatusUseCase
from kindling.core.use_case_errors import ConfigurationError
from kindling.domain.config import EmbeddingConfig, KindlingConfig, SourceConfig, StoreConfig
from tests.conftest import create_git_repo


def test_config_factory() -> None:
    assert isinstance(ConfigFactory().create_config_provider(), TomlConfigProvider)


class TestStoreFactory:
    def test_sqlite_path_is_relative_to_kindling_dir(self, tmp_path: Path) -> None:
        store = StoreFactory().create_kv_store(StoreConfig(sqlite_path="data/kv.db"), tmp_path)
        assert isinstance(store, SQLiteKeyValueStore)
        assert store.db_path == tmp_path / "data" / "kv.db"

    def test_absolute_sqlite_path(self, tmp_path: Path) -> None:
        absolute = tmp_path / "elsewhere.db"
        store = StoreFactory().create_kv_store(StoreConfig(sqlite_path=str(absolute)), Path("x"))
        assert store.db_path == absolute

    def test_memory(self, tmp_path: Path) -> None:
        store = StoreFactory().create_kv_store(StoreConfig(backend="memory"), tmp_path)
        assert isinstance(store, MemoryKeyValueStore)

    async def test_redis_url_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6380/2")

        store = StoreFactory().create_kv_store(StoreConfig(backend="redis"), tmp_path)

        assert isinstance(store, RedisKeyValueStore)
        kwargs = store.client.connection_pool.connection_kwargs
        assert kwargs["host"] == "cache.internal"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        await store.aclose()


class TestSourceFactory:
    def test_git_provider(self, tmp_path: Path) -> None:
        repo = create_git_repo(tmp_path / "repo")
        source = SourceFactory().create_source(SourceConfig(provider="git", local_path=str(repo)))
        assert isinstance(source, GitSourceProvider)
        assert source.repo_root == repo.resolve()

    def test_github_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        assert isinstance(SourceFactory().create_source(SourceConfig()), GitHubSourceProvider)


class TestEmbeddingFactory:
    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EMBED_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="EMBED_KEY"):
            EmbeddingFactory().create_embedding_client(EmbeddingConfig(api_key_env="EMBED_KEY"))

    def test_creates_client(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBED_KEY", "sk-test")
        config = EmbeddingConfig(api_key_env="EMBED_KEY", dimensions=64)

        client = EmbeddingFactory().create_embedding_client(config)

        assert isinstance(client.provider, OpenAIEmbeddingProvider)
        assert client.dimensions == 64


def test_use_case_factory_wires_shared_store(embedding_client, source) -> None:
    config = KindlingConfig.default()
    kv = MemoryKeyValueStore()
    factory = UseCaseFactory()

    job = factory.create_indexing_job(config, kv, source, embedding_client)
    engine = factory.create_search_engine(config, kv, embedding_client)
    status = factory.create_status_usecase(kv)

    assert isinstance(job, IndexingJob)
    assert isinstance(engine, SearchEngine)
    assert isinstance(status, StatusUseCase)
    assert job.store.kv is engine.store.kv is status.store.kv is kv
    assert job.config is config.index
    assert engine.config is config.search
