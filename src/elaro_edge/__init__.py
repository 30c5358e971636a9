"""ELARO edge functions with signed server-to-server requests."""

__version__ = "0.1.0"
