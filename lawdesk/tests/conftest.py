import os
import pathlib
import sys
import tempfile
import uuid

import pytest


sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

TUNABLE_ENV = (
    "CASE_NUMBER_MAX_ATTEMPTS",
    "CASE_NUMBER_BUDGET_SECONDS",
    "TIMELINE_FETCH_TIMEOUT_SECONDS",
)


def pytest_configure():
    # lawdesk.app.db builds its engine at import time, so the URL must exist first.
    if os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL"):
        return
    db_file = pathlib.Path(tempfile.mkdtemp(prefix="lawdesk-tests-")) / "cases.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_file}"


@pytest.fixture(autouse=True)
def default_tunables(monkeypatch):
    for name in TUNABLE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def sqlite_engine():
    from lawdesk.app import models  # noqa: F401
    from lawdesk.app.db import Base, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sqlite_session(sqlite_engine):
    from lawdesk.app.db import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def seed_scope(sqlite_session):
    """
    Seeds a fresh tenant (unique owner uid) with one client and one user.
    Every test gets its own owner, so case-number sequences never collide across tests.
    """
    from lawdesk.app.domain.contracts import CaseScope
    from lawdesk.app.models import LawClient, User

    def _seed(owner_uid=None, organization_id=None):
        scope = CaseScope(
            owner_uid=owner_uid or f"owner-{uuid.uuid4().hex[:12]}",
            organization_id=organization_id or f"org-{uuid.uuid4().hex[:12]}",
        )
        client = LawClient(
            owner_uid=scope.owner_uid,
            organization_id=scope.organization_id,
            name="Acme Holdings",
            email="legal@acme.test",
            client_type="company",
        )
        user = User(full_name="Dana Reyes", email=f"dana-{uuid.uuid4().hex[:8]}@firm.test")
        sqlite_session.add_all([client, user])
        sqlite_session.commit()
        return scope, client, user

    return _seed


@pytest.fixture()
def api_client(sqlite_engine, sqlite_session):
    """
    Request handlers share the test's session; timeline fetches get real sessions
    from SessionLocal because they run on worker threads.
    """
    from fastapi.testclient import TestClient

    from lawdesk.app.db import SessionLocal, get_db, get_session_factory
    from lawdesk.app.main import app

    def _shared_session():
        yield sqlite_session

    overrides = {
        get_db: _shared_session,
        get_session_factory: lambda: SessionLocal,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield TestClient(app)
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)
