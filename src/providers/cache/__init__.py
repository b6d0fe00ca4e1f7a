"""Cache adapters (cachetools TTL cache)."""
