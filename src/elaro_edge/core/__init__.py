"""Configuration, errors and cryptographic primitives."""
