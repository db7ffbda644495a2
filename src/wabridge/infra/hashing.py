"""Hashing utilities for PII protection in logs.

Chat addresses are never logged; a short, non-reversible digest is logged
instead so that lines about the same contact can still be correlated.
"""

import hashlib


def hash_identifier(value: str) -> str:
    """Create non-reversible hash for logging. Returns first 12 chars of sha256."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]
