"""OpenAI embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports OpenAI-compatible endpoints via ``openai_base_url``.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

# Hard per-request input limit of the embeddings endpoint.  The embedding
# generator sends far smaller batches; this only guards direct callers.
_OPENAI_BATCH_LIMIT = 2048

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) unless
    ``openai_embedding_model`` says otherwise.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1536)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, preserving input order."""
        if not texts:
            return []

        try:
            vectors: list[list[float]] = []
            for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
                batch = texts[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(input=batch, model=self._model)
                # Items carry ``index``; sort so vectors line up with inputs.
                ordered = sorted(response.data, key=lambda item: item.index)
                vectors.extend(item.embedding for item in ordered)
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"OpenAI embeddings API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if len(vectors) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} embeddings, received {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai_embedding"

    def get_model_name(self) -> str:
        return self._model

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
