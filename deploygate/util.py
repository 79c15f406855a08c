"""
Utility functions for deploygate.

Provides source fingerprinting and identifiers.
"""

import hashlib
import uuid
from typing import Union


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def fingerprint(source_code: str) -> str:
    """
    Deduplication key for a submission.

    Only the source text contributes; contract name and constructor
    arguments do not.
    """
    return sha256_hex(source_code)


def generate_request_id() -> str:
    """Generate a unique per-request identifier."""
    return uuid.uuid4().hex


def short_hash(value: str, length: int = 12) -> str:
    """Truncate a hex digest for log output."""
    return value[:length]
