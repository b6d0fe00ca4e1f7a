"""Embedding provider adapters (OpenAI text-embedding-3-small by default)."""
