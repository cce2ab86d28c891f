"""Shared fixtures: in-memory database, seeded users, and an API client."""

from collections.abc import Iterator
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pagegate.auth.models import User, UserRole
from pagegate.auth.utils import create_token, set_password
from pagegate.deps import get_db
from pagegate.locks import models as lock_models  # noqa: F401
from pagegate.main import app
from pagegate.security.deps import get_access_guard
from pagegate.security.guard import AccessGuard
from pagegate.shared.db import Base

TRUSTED_REFERER = "http://testserver/releases/1/edit"


@dataclass(frozen=True, slots=True)
class Account:
    id: int
    name: str
    email: str
    password: str
    token: str

    def headers(self, referer: str | None = TRUSTED_REFERER) -> dict[str, str]:
        h = {"Authorization": f"Bearer {self.token}"}
        if referer is not None:
            h["Referer"] = referer
        return h


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Iterator[Session]:
    session = session_factory()
    yield session
    session.close()


def _add_user(db: Session, email: str, name: str, role: UserRole, password: str) -> Account:
    user = User(email=email, name=name, role=role, is_active=True)
    set_password(user, password)
    db.add(user)
    db.commit()
    return Account(id=user.id, name=name, email=email, password=password, token=create_token(user.id))


@pytest.fixture
def accounts(db) -> dict[str, Account]:
    return {
        "alice": _add_user(db, "alice@example.com", "Alice", UserRole.admin, "alice-password"),
        "bob": _add_user(db, "bob@example.com", "Bob", UserRole.editor, "bob-password"),
        "carol": _add_user(db, "carol@example.com", "Carol", UserRole.viewer, "carol-password"),
    }


@pytest.fixture
def guard() -> AccessGuard:
    return AccessGuard({"testserver"})


@pytest.fixture
def client(session_factory, guard) -> Iterator[TestClient]:
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_access_guard] = lambda: guard
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
