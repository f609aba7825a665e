import pytest
from sqlalchemy.orm import sessionmaker

from database import build_engine, init_db
from heatsentry.services.snapshot_store import SnapshotStore


class FakeResponse:
    def __init__(self, status=200, payload=None, reason="OK"):
        self.status = status
        self.reason = reason
        self._payload = payload

    async def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; responses keyed by URL."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def get(self, url, params=None, **_kwargs):
        self.calls.append((url, params))
        resp = self.responses[url]
        if isinstance(resp, Exception):
            raise resp
        return resp


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return SnapshotStore(session_factory)
