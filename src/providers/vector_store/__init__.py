"""Vector store adapters.

- ChromaDBProvider    — persistent local store with cosine distance
- InMemoryVectorStore — numpy-backed store for tests, demos and CLI runs
"""
