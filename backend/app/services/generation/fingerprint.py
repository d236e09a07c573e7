"""Content fingerprint for generation bookkeeping."""

import hashlib


def compute_text_fingerprint(text: str) -> str:
    """Return the SHA-256 hex digest (64 chars) of *text* encoded as UTF-8.

    Stored as ``source_text_hash`` for deduplication. Switching algorithms
    makes previously stored fingerprints incomparable with new ones.
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
