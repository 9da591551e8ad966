"""Cache key derivation for analysis results."""

import hashlib

CACHE_KEY_PREFIX = "analysis:"


def normalize_text(text: str) -> str:
    """Trim surrounding whitespace; the only normalization applied before hashing."""
    return text.strip()


def compute_cache_key(text: str) -> str:
    """
    Build the cache key for a contract text.

    The key depends only on the trimmed text, so identical submissions from
    different callers share one cache entry.

    Example:
        >>> compute_cache_key("  abc ") == compute_cache_key("abc")
        True
    """
    digest = hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"
