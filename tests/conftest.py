"""Pytest configuration and fixtures."""

# pylint: disable=redefined-outer-name

import pytest
from fastapi.testclient import TestClient

from shaman.api.models import Answer, Resource
from shaman.app import create_app
from shaman.core.config import Settings
from shaman.core.repository import MemoryRepository

TEST_TOKEN = "test-token"


@pytest.fixture
def test_settings():
    """Provide test settings with predictable values."""
    return Settings(
        api_token=TEST_TOKEN,
        api_listen="127.0.0.1:1632",
        insecure=True,
        redis_ip=None,
        sentry_dsn=None,
        _env_file=None,
    )


@pytest.fixture
def repository():
    """Fresh in-memory record store for each test."""
    return MemoryRepository()


@pytest.fixture
def app(test_settings, repository):
    """Create a test application with injected settings and store."""
    return create_app(test_settings, repository)


@pytest.fixture
def client(app):
    """Test client sending the shared token on every request."""
    test_client = TestClient(app)
    test_client.headers.update({"X-AUTH-TOKEN": TEST_TOKEN})
    return test_client


@pytest.fixture
def anonymous_client(app):
    """Test client without any auth header."""
    return TestClient(app)


@pytest.fixture
def example_resource():
    """The resource from the API documentation example."""
    return Resource(
        domain="example.com",
        answers=[Answer(type="A", value="1.2.3.4", ttl=300)],
    )
