"""OpenAI-compatible embedding provider over HTTP.

Posts batches to ``{base_url}/embeddings`` with httpx. Authentication
failures are configuration errors; every other failure is an
EmbeddingProviderError so the indexing job can record it against the file
being embedded.
"""

import logging
import os

import httpx

from kindling.core.use_case_errors import ConfigurationError
from kindling.domain.config import EmbeddingConfig
from kindling.ports.embedders import EmbeddingProviderError

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider:
    """EmbeddingProvider for the OpenAI embeddings endpoint."""

    def __init__(
        self,
        api_key: str,
        config: EmbeddingConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            api_key: Bearer token for the API.
            config: Model, base URL and timeout.
            client: HTTP client to use; one is created if omitted.
        """
        if not api_key:
            raise ConfigurationError("Embedding API key is empty")
        self.config = config or EmbeddingConfig()
        self._client = client or httpx.AsyncClient(timeout=self.config.timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_env(
        cls, config: EmbeddingConfig | None = None, client: httpx.AsyncClient | None = None
    ) -> "OpenAIEmbeddingProvider":
        """Create a provider reading the API key from ``config.api_key_env``.

        Raises:
            ConfigurationError: If the environment variable is unset or empty.
        """
        config = config or EmbeddingConfig()
        api_key = os.environ.get(config.api_key_env, "")
        if not api_key:
            raise ConfigurationError(
                f"{config.api_key_env} is not set. Export an API key for the embedding provider."
            )
        return cls(api_key, config, client)

    @property
    def model(self) -> str:
        return self.config.model

    async def embed(self, texts: list[str], dimensions: int) -> list[list[float]]:
        """Embed a batch of texts, returning vectors in input order."""
        if not texts:
            return []

        url = f"{self.config.base_url.rstrip('/')}/embeddings"
        payload = {"model": self.config.model, "input": texts, "dimensions": dimensions}
        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

        if response.status_code in (401, 403):
            raise ConfigurationError(
                f"Embedding provider rejected the API key ({response.status_code}). "
                f"Check {self.config.api_key_env}."
            )
        if response.status_code >= 400:
            raise EmbeddingProviderError(
                f"Embedding provider returned {response.status_code}: {_error_detail(response)}"
            )

        try:
            data = response.json()["data"]
            ordered = sorted(data, key=lambda item: item["index"])
            vectors = [list(item["embedding"]) for item in ordered]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingProviderError(f"Malformed embedding response: {e}") from e

        logger.debug(f"Embedded {len(texts)} texts with {self.config.model}")
        return vectors

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", body["error"]))
    return str(body)[:200]
