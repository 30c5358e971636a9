"""Shared API dependencies for signed-request authentication."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from elaro_edge.core.settings import settings
from elaro_edge.db.session import get_db
from elaro_edge.services.email import ResendEmailClient, get_email_client
from elaro_edge.services.hmac_auth import HmacConfig, RequestAuthenticator, load_hmac_config
from elaro_edge.services.nonce_store import NonceStore, SqlNonceStore

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_hmac_config() -> HmacConfig:
    """Return verification settings read from the environment."""
    return load_hmac_config()


def get_nonce_store(db: SessionDep) -> NonceStore:
    """Return the database-backed nonce store for this request."""
    return SqlNonceStore(db)


def get_service_role_key() -> str | None:
    """Return the bearer credential callers must present."""
    return settings.service_role_key


def get_authenticator(
    config: Annotated[HmacConfig, Depends(get_hmac_config)],
    store: Annotated[NonceStore, Depends(get_nonce_store)],
) -> RequestAuthenticator:
    """Build a request authenticator bound to the request's nonce store."""
    return RequestAuthenticator(config, store)


def get_email_client_dep() -> ResendEmailClient:
    """Get ResendEmailClient dependency for dependency injection."""
    return get_email_client()


AuthenticatorDep = Annotated[RequestAuthenticator, Depends(get_authenticator)]
ServiceRoleKeyDep = Annotated[str | None, Depends(get_service_role_key)]
EmailClientDep = Annotated[ResendEmailClient, Depends(get_email_client_dep)]
