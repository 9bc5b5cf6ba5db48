"""Shared API key utilities."""

import hashlib


def compute_api_key_hash(api_key: str) -> str:
    """Return SHA-256 hex hash for an API key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()
