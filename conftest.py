import httpx
import pytest
from fastapi.testclient import TestClient

from api import create_app
from client import LibraryClient
from database import Database
from library import Library


@pytest.fixture
def db(tmp_path, request):
    # A separate database file per test
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    database = Database(db_file=db_file, pool_size=4, pool_timeout=10)
    database.create_tables()
    yield database
    database.close()


@pytest.fixture
def lib(db):
    return Library(db)


@pytest.fixture
def app(tmp_path):
    application = create_app(db_file=str(tmp_path / "api_test.db"))
    yield application
    application.state.library.close()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_api_client(app):
    """Factory for LibraryClient instances wired straight into the app, no network."""
    def factory(base_url=None, timeout=None):
        return LibraryClient(
            base_url=base_url or "http://testserver",
            timeout=timeout,
            transport=httpx.ASGITransport(app=app),
        )
    return factory
