"""Idempotency key handling utilities."""

import hashlib

IDEMPOTENCY_HEADER = "Idempotency-Key"


def build_cache_key(idempotency_key: str, method: str, path: str, authorization: str | None) -> str:
    """Scope a client-supplied key to the caller and the endpoint.

    Args:
        idempotency_key: Value of the Idempotency-Key header
        method: HTTP method
        path: Request path
        authorization: Authorization header, so two accounts never share an entry

    Returns:
        Redis key
    """
    key_parts = [idempotency_key.strip(), method.upper(), path, authorization or ""]
    digest = hashlib.sha256("|".join(key_parts).encode()).hexdigest()
    return f"idempotency:{digest}"
