"""Public interface definitions for all external service providers.

Every external API or service is reached through the abstract base classes
in this package.  Concrete adapters live in ``src/providers/`` and are
wired together in ``src/main.py`` (``_build_all``), so unit tests can pass
``MagicMock(spec=IXProvider)`` fakes instead of real clients.
"""

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.conversation_store import IConversationStore
from src.interfaces.document_store import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.lead_provider import ILeadProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.ticketing_provider import ITicketingProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IConversationStore",
    "IDocumentStore",
    "IEmbeddingProvider",
    "ILLMProvider",
    "ILeadProvider",
    "ITicketingProvider",
    "IVectorStoreProvider",
]
