"""Service layer for request authentication, nonce storage and email delivery."""
