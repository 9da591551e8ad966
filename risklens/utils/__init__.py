"""Small helpers shared across services (cache key hashing)."""
