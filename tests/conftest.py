# ──────────────────────────────────────────────────────────────────────────
# tests/conftest.py
# --------------------------------------------------------------------------
"""
Global pytest fixtures: an in-memory SQLite session registered with the
Driver singleton, the way the scanner registers its postgres session.

    pytest -v
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from polkaledger.driver_singleton import Driver
from polkaledger.errors import ErrorCounter
from polkaledger.models import Base


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        Driver().add_driver(session)
        yield session
    engine.dispose()


@pytest.fixture
def errors():
    return ErrorCounter()
