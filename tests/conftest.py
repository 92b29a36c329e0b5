import os
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dashboard_auth.auth import SessionManager
from dashboard_auth.db import Base
from dashboard_auth.models.session_record import SessionRecord
from dashboard_auth.models.user import User
from dashboard_auth.sessions import SessionStore
from dashboard_auth.users import SqlUserDirectory

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _ensure_safe_test_database(url: str) -> None:
    db_name = make_url(url).database
    if db_name == "dashboard":
        pytest.skip("Refusing to run session tests on primary database 'dashboard'.")


@pytest.fixture(scope="session")
def engine():
    _ensure_safe_test_database(TEST_DATABASE_URL)
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(TEST_DATABASE_URL, future=True)

    tables = [User.__table__, SessionRecord.__table__]
    Base.metadata.drop_all(bind=engine, tables=tables)
    Base.metadata.create_all(bind=engine, tables=tables)
    yield engine
    Base.metadata.drop_all(bind=engine, tables=tables)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        session.query(SessionRecord).delete()
        session.query(User).delete()
        session.commit()
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture
def directory(db_session: Session, clock: FrozenClock) -> SqlUserDirectory:
    return SqlUserDirectory(db_session, clock=clock)


@pytest.fixture
def store(db_session: Session, clock: FrozenClock) -> SessionStore:
    return SessionStore(db_session, clock=clock)


@pytest.fixture
def manager(directory: SqlUserDirectory, store: SessionStore, clock: FrozenClock) -> SessionManager:
    return SessionManager(directory, store, clock=clock)
