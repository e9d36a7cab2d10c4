"""
Job identity derivation shared by the submission and confirmation sides.
"""

import hashlib
import json
from typing import Any

REQUEST_HASH_LENGTH = 64


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (dict, list)):
        # Already-decoded bodies hash as the compact JSON the chain stores
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def compute_request_hash(nonce: Any, body: Any, binary_data: Any) -> str:
    """Return the upper-case SHA-256 hex digest of ``nonce ++ body ++ binary_data``.

    Inputs are never rejected; each one is hashed as its string form, with
    already-decoded JSON bodies rendered compactly.
    """
    hash_str = _as_text(nonce) + _as_text(body) + _as_text(binary_data)
    return hashlib.sha256(hash_str.encode("utf-8")).hexdigest().upper()


def is_request_hash(value: Any) -> bool:
    """Check whether a value looks like a canonical request hash."""
    if not isinstance(value, str) or len(value) != REQUEST_HASH_LENGTH:
        return False
    return all(c in "0123456789ABCDEF" for c in value)


def normalize_request_hash(value: Any) -> str:
    """Upper-case a carried hash so it compares equal to computed ones."""
    return _as_text(value).strip().upper()
