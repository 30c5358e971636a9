"""HMAC request authentication with replay protection.

Inbound server-to-server requests carry three headers:

- ``X-Timestamp``: Unix seconds when the request was signed
- ``X-Nonce``: single-use random value
- ``X-Signature``: hex HMAC-SHA256 over ``{timestamp}.{nonce}.{raw_body}``

``RequestAuthenticator.verify`` runs an ordered chain of checks and stops at
the first failure. Caller-attributable failures raise ``AuthenticationError``
with one uniform public message; deployment problems raise
``ConfigurationError``. Only after the signature matches is the nonce
committed to the store.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from elaro_edge.core.errors import AuthenticationError, ConfigurationError
from elaro_edge.core.logging_config import nonce_prefix
from elaro_edge.core.security import (
    MIN_SECRET_BYTES,
    compute_signature,
    constant_time_compare,
    secret_length_bytes,
)
from elaro_edge.core.settings import settings
from elaro_edge.db.time import from_unix
from elaro_edge.services.nonce_store import (
    NonceStore,
    NonceStoreUnavailableError,
    ReservationResult,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Signature"
TIMESTAMP_HEADER = "X-Timestamp"
NONCE_HEADER = "X-Nonce"
BEARER_PREFIX = "Bearer "
# Unix seconds stay below 12 digits until the year 33658.
MAX_TIMESTAMP_DIGITS = 12


@dataclass(frozen=True)
class HmacConfig:
    """Immutable configuration for request verification."""

    secret: str | None
    timestamp_tolerance_seconds: int = 300
    max_future_skew_seconds: int = 300
    nonce_ttl_seconds: int = 600
    min_secret_bytes: int = MIN_SECRET_BYTES


@dataclass(frozen=True)
class VerifiedRequest:
    """A request whose signature, freshness and nonce have been checked."""

    timestamp: int
    nonce: str
    raw_body: bytes
    nonce_persisted: bool = True


@dataclass
class _Attempt:
    """Working state threaded through the verification steps."""

    headers: Mapping[str, str]
    raw_body: bytes
    now: float
    signature: str = ""
    nonce: str = ""
    timestamp_raw: str = ""
    timestamp: int = 0
    nonce_persisted: bool = True
    trace: dict[str, Any] = field(default_factory=dict)


def load_hmac_config() -> HmacConfig:
    """Build configuration object from global settings."""

    return HmacConfig(
        secret=settings.internal_hmac_secret,
        timestamp_tolerance_seconds=settings.hmac_timestamp_tolerance_seconds,
        max_future_skew_seconds=settings.hmac_max_future_skew_seconds,
        nonce_ttl_seconds=settings.nonce_ttl_seconds,
    )


def trace_context(headers: Mapping[str, str]) -> dict[str, Any]:
    """Extract request correlation identifiers for log records."""
    context: dict[str, Any] = {}
    request_id = _header(headers, "X-Request-ID")
    if request_id:
        context["request_id"] = request_id
    traceparent = _header(headers, "traceparent")
    if traceparent:
        parts = traceparent.split("-")
        if len(parts) >= 3:
            context["trace_id"] = parts[1]
            context["span_id"] = parts[2]
    return context


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value


class RequestAuthenticator:
    """Verify signed server-to-server requests against a nonce store."""

    def __init__(
        self,
        config: HmacConfig,
        store: NonceStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.store = store
        self.clock = clock
        self._steps: tuple[Callable[[_Attempt], None], ...] = (
            self._check_presence,
            self._check_secret,
            self._check_timestamp,
            self._check_replay,
            self._check_signature,
            self._commit_nonce,
        )

    def ensure_store_ready(self) -> None:
        """Fail closed if the nonce store is unreachable or its table is missing."""
        try:
            self.store.probe()
        except NonceStoreUnavailableError as exc:
            if exc.missing_table:
                logger.critical(
                    "used_nonces table does not exist - replay protection disabled: %s", exc
                )
                raise ConfigurationError("replay protection table missing") from exc
            logger.critical("Cannot access used_nonces table: %s", exc)
            raise ConfigurationError("cannot access replay protection table") from exc

    def verify(self, headers: Mapping[str, str], raw_body: bytes) -> VerifiedRequest:
        """Run every verification step in order.

        Args:
            headers: Inbound request headers (any case-insensitive mapping).
            raw_body: Request bytes captured before JSON parsing.

        Returns:
            The verified request.

        Raises:
            AuthenticationError: If the caller failed any check.
            ConfigurationError: If the shared secret is missing or weak.
        """
        attempt = _Attempt(
            headers=headers,
            raw_body=raw_body,
            now=self.clock(),
            trace=trace_context(headers),
        )
        for step in self._steps:
            step(attempt)

        logger.info(
            "HMAC signature verified nonce=%s timestamp=%d",
            nonce_prefix(attempt.nonce),
            attempt.timestamp,
            extra=attempt.trace,
        )
        return VerifiedRequest(
            timestamp=attempt.timestamp,
            nonce=attempt.nonce,
            raw_body=raw_body,
            nonce_persisted=attempt.nonce_persisted,
        )

    def verify_bearer(self, authorization: str | None, expected: str | None) -> None:
        """Check the secondary bearer credential in constant time."""
        if not expected:
            logger.error("Service role key not configured")
            raise ConfigurationError("service role key not configured")
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            logger.error("Missing or invalid Authorization header")
            raise AuthenticationError("missing bearer credential")
        received = authorization[len(BEARER_PREFIX):]
        if not constant_time_compare(received, expected):
            logger.error("Invalid service role key")
            raise AuthenticationError("invalid bearer credential")

    # --- Verification steps -------------------------------------------------------
    def _check_presence(self, attempt: _Attempt) -> None:
        signature = _header(attempt.headers, SIGNATURE_HEADER)
        timestamp_raw = _header(attempt.headers, TIMESTAMP_HEADER)
        nonce = _header(attempt.headers, NONCE_HEADER)
        if not signature or not timestamp_raw or not nonce:
            logger.error(
                "HMAC verification failed: missing headers "
                "has_signature=%s has_timestamp=%s has_nonce=%s",
                bool(signature),
                bool(timestamp_raw),
                bool(nonce),
                extra=attempt.trace,
            )
            raise AuthenticationError("missing signature headers")
        attempt.signature = signature
        attempt.timestamp_raw = timestamp_raw
        attempt.nonce = nonce

    def _check_secret(self, attempt: _Attempt) -> None:
        length = secret_length_bytes(self.config.secret)
        if length == 0:
            logger.critical("INTERNAL_HMAC_SECRET not configured", extra=attempt.trace)
            raise ConfigurationError("hmac secret not configured")
        if length < self.config.min_secret_bytes:
            logger.critical(
                "INTERNAL_HMAC_SECRET too short: %d bytes, minimum %d",
                length,
                self.config.min_secret_bytes,
                extra=attempt.trace,
            )
            raise ConfigurationError("hmac secret too short")

    def _check_timestamp(self, attempt: _Attempt) -> None:
        now = int(attempt.now)
        raw = attempt.timestamp_raw.strip()
        if not (raw.isascii() and raw.isdigit()) or len(raw) > MAX_TIMESTAMP_DIGITS:
            logger.error(
                "HMAC verification failed: unparseable timestamp", extra=attempt.trace
            )
            raise AuthenticationError("invalid timestamp")
        timestamp = int(raw)

        if timestamp < now - self.config.timestamp_tolerance_seconds:
            logger.error(
                "HMAC verification failed: expired timestamp age_seconds=%d",
                now - timestamp,
                extra=attempt.trace,
            )
            raise AuthenticationError("expired timestamp")
        if timestamp > now + self.config.max_future_skew_seconds:
            logger.error(
                "HMAC verification failed: timestamp in the future skew_seconds=%d",
                timestamp - now,
                extra=attempt.trace,
            )
            raise AuthenticationError("future timestamp")
        attempt.timestamp = timestamp

    def _check_replay(self, attempt: _Attempt) -> None:
        try:
            seen = self.store.exists_unexpired(attempt.nonce, now=from_unix(attempt.now))
        except NonceStoreUnavailableError as exc:
            logger.error(
                "HMAC verification failed: error checking nonce: %s", exc, extra=attempt.trace
            )
            raise AuthenticationError("nonce lookup failed") from exc
        if seen:
            logger.error(
                "HMAC verification failed: nonce already used (replay) nonce=%s",
                nonce_prefix(attempt.nonce),
                extra=attempt.trace,
            )
            raise AuthenticationError("replayed nonce")

    def _check_signature(self, attempt: _Attempt) -> None:
        expected = compute_signature(
            self.config.secret or "", attempt.timestamp, attempt.nonce, attempt.raw_body
        )
        if not constant_time_compare(attempt.signature, expected):
            logger.error(
                "HMAC verification failed: signature mismatch signature_prefix=%s",
                attempt.signature[:8],
                extra=attempt.trace,
            )
            raise AuthenticationError("signature mismatch")

    def _commit_nonce(self, attempt: _Attempt) -> None:
        now = from_unix(attempt.now)
        # The row must outlive the last instant this timestamp is still fresh.
        fresh_until = from_unix(attempt.timestamp + self.config.timestamp_tolerance_seconds + 1)
        expires_at = max(now + timedelta(seconds=self.config.nonce_ttl_seconds), fresh_until)
        result = self.store.reserve(attempt.nonce, expires_at, now=now)
        if result is ReservationResult.ALREADY_USED:
            logger.error(
                "HMAC verification failed: nonce committed concurrently nonce=%s",
                nonce_prefix(attempt.nonce),
                extra=attempt.trace,
            )
            raise AuthenticationError("replayed nonce")
        if result is ReservationResult.UNAVAILABLE:
            logger.warning(
                "Failed to store nonce (non-critical) nonce=%s",
                nonce_prefix(attempt.nonce),
                extra=attempt.trace,
            )
            attempt.nonce_persisted = False
