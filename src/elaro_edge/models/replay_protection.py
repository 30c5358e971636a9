"""Models supporting replay protection for signed requests."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from elaro_edge.db.session import Base
from elaro_edge.db.time import utcnow


class UsedNonce(Base):
    """Record indicating that a request nonce has already been accepted.

    Rows are never updated. Once ``expires_at`` has passed the nonce may be
    accepted again and the row is eligible for cleanup.
    """

    __tablename__ = "used_nonces"
    __table_args__ = (Index("ix_used_nonces_expires_at", "expires_at"),)

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    nonce: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
