"""Nonce storage backing replay protection for signed requests."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from elaro_edge.core.logging_config import nonce_prefix
from elaro_edge.db.time import utcnow
from elaro_edge.models import UsedNonce

logger = logging.getLogger(__name__)

_MISSING_TABLE_MARKERS = ("does not exist", "no such table", "undefinedtable")


class ReservationResult(Enum):
    """Outcome of committing a nonce after a verified signature."""

    RESERVED = "reserved"
    ALREADY_USED = "already_used"
    UNAVAILABLE = "unavailable"


class NonceStoreUnavailableError(RuntimeError):
    """Raised when the nonce store cannot be reached or queried."""

    def __init__(self, message: str, *, missing_table: bool = False) -> None:
        super().__init__(message)
        self.missing_table = missing_table


class NonceStore(Protocol):
    """Narrow storage contract consumed by the request authenticator."""

    def probe(self) -> None: ...

    def exists_unexpired(self, nonce: str, now: datetime | None = None) -> bool: ...

    def reserve(
        self, nonce: str, expires_at: datetime, now: datetime | None = None
    ) -> ReservationResult: ...

    def purge_expired(self, now: datetime | None = None) -> int: ...


def is_missing_table_error(exc: BaseException) -> bool:
    """Return True if a database error means the nonce table is absent."""
    message = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in message for marker in _MISSING_TABLE_MARKERS)


class SqlNonceStore:
    """Nonce store over the ``used_nonces`` table.

    Uniqueness of unexpired nonces is enforced by the table's unique key, so
    two concurrent requests presenting the same nonce cannot both commit.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def probe(self) -> None:
        """Run a bounded select to prove the table exists and is reachable."""
        try:
            self.session.execute(select(UsedNonce.id).limit(1)).first()
        except SQLAlchemyError as exc:
            self.session.rollback()
            missing = is_missing_table_error(exc)
            raise NonceStoreUnavailableError(
                "used_nonces table does not exist" if missing else f"cannot access used_nonces: {exc}",
                missing_table=missing,
            ) from exc

    def exists_unexpired(self, nonce: str, now: datetime | None = None) -> bool:
        now = now or utcnow()
        try:
            row = self.session.execute(
                select(UsedNonce.id)
                .where(UsedNonce.nonce == nonce, UsedNonce.expires_at > now)
                .limit(1)
            ).first()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise NonceStoreUnavailableError(f"nonce lookup failed: {exc}") from exc
        return row is not None

    def reserve(
        self, nonce: str, expires_at: datetime, now: datetime | None = None
    ) -> ReservationResult:
        """Insert the nonce, replacing an expired row with the same value."""
        now = now or utcnow()
        try:
            self.session.execute(
                delete(UsedNonce).where(UsedNonce.nonce == nonce, UsedNonce.expires_at <= now)
            )
            self.session.add(UsedNonce(nonce=nonce, expires_at=expires_at, created_at=now))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return ReservationResult.ALREADY_USED
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.warning("Failed to store nonce %s: %s", nonce_prefix(nonce), exc)
            return ReservationResult.UNAVAILABLE
        return ReservationResult.RESERVED

    def count_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        return int(
            self.session.execute(
                select(func.count()).select_from(UsedNonce).where(UsedNonce.expires_at <= now)
            ).scalar_one()
        )

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete expired nonces and return how many rows were removed."""
        now = now or utcnow()
        result = self.session.execute(delete(UsedNonce).where(UsedNonce.expires_at <= now))
        self.session.commit()
        return int(result.rowcount or 0)


class InMemoryNonceStore:
    """Process-local nonce store for tests and local development."""

    def __init__(self) -> None:
        self._entries: dict[str, datetime] = {}
        self._lock = Lock()

    def probe(self) -> None:
        return None

    def exists_unexpired(self, nonce: str, now: datetime | None = None) -> bool:
        now = now or utcnow()
        with self._lock:
            expires_at = self._entries.get(nonce)
            return expires_at is not None and expires_at > now

    def reserve(
        self, nonce: str, expires_at: datetime, now: datetime | None = None
    ) -> ReservationResult:
        now = now or utcnow()
        with self._lock:
            current = self._entries.get(nonce)
            if current is not None and current > now:
                return ReservationResult.ALREADY_USED
            self._entries[nonce] = expires_at
            return ReservationResult.RESERVED

    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or utcnow()
        with self._lock:
            dead = [key for key, expires_at in self._entries.items() if expires_at <= now]
            for key in dead:
                self._entries.pop(key, None)
            return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
