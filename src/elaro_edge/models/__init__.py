"""SQLAlchemy models for the ELARO edge functions."""

from .replay_protection import UsedNonce

__all__ = ["UsedNonce"]
