# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
from pathlib import Path

# settings are read at import time; point them at a throwaway sqlite file first
_DB_PATH = Path(tempfile.gettempdir()) / f"rentledger_test_{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["APP_ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from rentledger import models  # noqa: E402,F401
from rentledger.db import Base, SessionLocal, engine  # noqa: E402


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(db):
    from rentledger.main import create_app

    return TestClient(create_app())
