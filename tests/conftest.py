# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from elaro_edge.api.v1 import dependencies as deps
from elaro_edge.db.session import Base
from elaro_edge.db.session import get_db as app_get_session
from elaro_edge.main import app as fastapi_app
from elaro_edge.services.email import WelcomeEmail
from elaro_edge.services.hmac_auth import HmacConfig
from elaro_edge.services.request_signer import sign_request

TEST_DB_URL = "sqlite://"
TEST_SECRET = "s" * 48
TEST_SERVICE_ROLE_KEY = "service-role-key-for-tests"


def _memory_engine() -> Engine:
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


class FakeEmailClient:
    """Records messages instead of calling the provider."""

    def __init__(self, email_id: str = "email_123") -> None:
        self.email_id = email_id
        self.sent: list[WelcomeEmail] = []

    async def send(self, email: WelcomeEmail) -> str:
        self.sent.append(email)
        return self.email_id


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = _memory_engine()
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def empty_db_session() -> Iterator[Session]:
    """Session on a database where migrations were never run."""
    engine = _memory_engine()
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def hmac_config() -> HmacConfig:
    return HmacConfig(secret=TEST_SECRET)


@pytest.fixture()
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    hmac_config: HmacConfig,
    email_client: FakeEmailClient,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        deps.get_hmac_config: lambda: hmac_config,
        deps.get_service_role_key: lambda: TEST_SERVICE_ROLE_KEY,
        deps.get_email_client_dep: lambda: email_client,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def signed_headers() -> Callable[..., dict[str, str]]:
    """Return a helper producing full auth headers for a raw body."""

    def _build(
        body: bytes,
        *,
        secret: str = TEST_SECRET,
        bearer: str | None = TEST_SERVICE_ROLE_KEY,
        **kwargs: Any,
    ) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **sign_request(secret, body, **kwargs)}
        if bearer is not None:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    return _build
