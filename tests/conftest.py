# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `recipebox` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from recipebox import app as app_module
from recipebox.db import Base, create_db_engine, init_db


def make_session_factory():
    """A fresh in-memory store. StaticPool shares the one connection, so the
    TestClient's worker thread sees the same database."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    factory = make_session_factory()
    yield factory
    Base.metadata.drop_all(bind=factory.kw["bind"])


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db():
    # a second, unrelated store for export/import round trips
    factory = make_session_factory()
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[app_module.get_db] = override_get_db
    app_module.app.state.photo_lookup = None
    try:
        yield TestClient(app_module.app)
    finally:
        app_module.app.dependency_overrides.clear()
        app_module.app.state.photo_lookup = None
