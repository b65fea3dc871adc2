"""
Cryptographic hashing utilities.

Provides the digests used to compare canonical artifacts across runs.

IMPORTANT DESIGN RULE:
- Canonicalization MUST occur outside this module
- This module hashes bytes, and bytes only
"""

import hashlib
from typing import Union


def compute_artifact_hash(canonical_bytes: Union[bytes, bytearray]) -> str:
    """
    Compute a deterministic, human-readable hash of a canonical artifact.

    Returns:
        A SHA-256 hex digest with an explicit algorithm prefix.
        Example: ``SHA-256:3b7c0e4c...``
    """
    if not isinstance(canonical_bytes, (bytes, bytearray)):
        raise TypeError(
            "compute_artifact_hash expects canonical bytes, "
            f"got {type(canonical_bytes).__name__}"
        )

    digest = hashlib.sha256(canonical_bytes).hexdigest()
    return f"SHA-256:{digest}"


def short_digest(material: str) -> str:
    """Stable 12-character digest of a text value."""
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:12]
