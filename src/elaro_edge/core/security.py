"""HMAC-SHA256 primitives for server-to-server request signing."""
from __future__ import annotations

import hashlib
import hmac

MIN_SECRET_BYTES = 32  # 256 bits


def canonical_message(timestamp: int | str, nonce: str, raw_body: bytes) -> bytes:
    """Build the exact bytes covered by a request signature.

    The format is ``{timestamp}.{nonce}.{raw_body}``. The body is appended
    verbatim so any re-serialisation on either side breaks verification.
    """
    return f"{timestamp}.{nonce}.".encode() + raw_body


def compute_signature(secret: str, timestamp: int | str, nonce: str, raw_body: bytes) -> str:
    """Return the lowercase hex HMAC-SHA256 of the canonical message.

    Args:
        secret: Shared secret, encoded as UTF-8 for the MAC key.
        timestamp: Unix seconds as sent in ``X-Timestamp``.
        nonce: Single-use value as sent in ``X-Nonce``.
        raw_body: Request payload bytes exactly as transmitted.

    Returns:
        Hex-encoded signature.
    """
    message = canonical_message(timestamp, nonce, raw_body)
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings without leaking the first differing position.

    Lengths are checked first; equal-length inputs are then compared with
    ``hmac.compare_digest``, which touches every byte before answering.
    """
    a_bytes = a.encode("utf-8")
    b_bytes = b.encode("utf-8")
    if len(a_bytes) != len(b_bytes):
        return False
    return hmac.compare_digest(a_bytes, b_bytes)


def secret_length_bytes(secret: str | None) -> int:
    """Return the UTF-8 byte length of a secret (0 when unset)."""
    if not secret:
        return 0
    return len(secret.encode("utf-8"))


def is_strong_secret(secret: str | None, min_bytes: int = MIN_SECRET_BYTES) -> bool:
    """Return True if the secret is present and at least ``min_bytes`` long."""
    return secret_length_bytes(secret) >= min_bytes
