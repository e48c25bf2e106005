import sys
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lending.application import create_app  # noqa: E402
from lending.core.config import AppSettings  # noqa: E402
from lending.db.session import build_engine, build_session_factory, init_db  # noqa: E402


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = build_session_factory(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings(DB_URL="sqlite://", TZ="UTC", LOG_JSON=False)


@pytest.fixture()
def client(settings, engine) -> Generator[TestClient, None, None]:
    app = create_app(settings, engine=engine)
    with TestClient(app) as test_client:
        yield test_client
