"""Abstract base class for text-embedding providers.

The same provider instance embeds both the corpus (ingestion) and user
queries (retrieval); query and corpus vectors must come from one model
with one dimension or similarity scores are meaningless.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (src/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.

        Returns
        -------
        list[list[float]]
            Vectors in the same order as *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one text (typically a search query)."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the fixed dimensionality of the produced vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return an identifier such as ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
