"""Shared fixtures: settings, in-memory doubles and a TestClient wired to them."""
import pytest
from fastapi.testclient import TestClient

from tests.fixtures.converter_fixtures import TEST_CONVERTER_URL, StubPdfConverter
from tests.fixtures.store_fixtures import InMemoryImageStore
from uploads_api.config.settings import Settings
from uploads_api.dependencies import get_converter_factory, get_image_store
from uploads_api.main import create_app

TEST_MONGODB_URI = "mongodb://localhost:27017"


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def settings(scratch_dir) -> Settings:
    return Settings(
        environment="test",
        mongodb_uri=TEST_MONGODB_URI,
        mongodb_database="uploads_test",
        pdf_converter_url=TEST_CONVERTER_URL,
        scratch_dir=str(scratch_dir),
    )


@pytest.fixture
def store() -> InMemoryImageStore:
    return InMemoryImageStore()


@pytest.fixture
def converter() -> StubPdfConverter:
    return StubPdfConverter()


@pytest.fixture
def make_client(store, converter):
    """Build a TestClient for the given settings, with the store and converter swapped for doubles."""
    clients = []

    def _make_client(app_settings: Settings, stub_converter: bool = True) -> TestClient:
        app = create_app(settings=app_settings)
        app.dependency_overrides[get_image_store] = lambda: store
        if stub_converter:
            app.dependency_overrides[get_converter_factory] = lambda: (lambda: converter)
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make_client
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, settings) -> TestClient:
    return make_client(settings)
