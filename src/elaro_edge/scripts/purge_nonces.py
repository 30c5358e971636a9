# src/elaro_edge/scripts/purge_nonces.py
"""
Cron job that removes expired request nonces.

The authenticator never deletes rows; this job keeps ``used_nonces`` from
growing without bound. Run it every few minutes or at least daily.
"""

from __future__ import annotations

import argparse
import logging

from sqlalchemy.orm import Session

from elaro_edge.core.logging_config import configure_logging
from elaro_edge.core.settings import settings
from elaro_edge.db.session import SessionLocal
from elaro_edge.services.nonce_store import SqlNonceStore

logger = logging.getLogger(__name__)


def purge_expired_nonces(db: Session, *, dry_run: bool = False) -> int:
    """Delete expired nonces and return how many were (or would be) removed.

    Args:
        db: Database session
        dry_run: Count expired rows without deleting them
    """
    store = SqlNonceStore(db)
    if dry_run:
        count = store.count_expired()
        logger.info("%d expired nonces would be purged", count)
        return count
    count = store.purge_expired()
    logger.info("Purged %d expired nonces", count)
    return count


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Purge expired request nonces")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many nonces have expired without deleting them.",
    )
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    db = SessionLocal()
    try:
        purge_expired_nonces(db, dry_run=args.dry_run)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
