"""Tests for app.py."""

# pylint: disable=missing-function-docstring

import logging

from fastapi.testclient import TestClient

from shaman.app import create_app
from shaman.core.config import Settings
from shaman.core.repository import MemoryRepository


class RecordingRepository(MemoryRepository):
    """Memory store that remembers whether it was closed."""

    def __init__(self):
        super().__init__()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class TestCreateApp:
    """Tests for the application factory."""

    def test_settings_and_repository_attached(self, test_settings, repository):
        app = create_app(test_settings, repository)

        assert app.state.settings is test_settings
        assert app.state.repository is repository

    def test_builds_repository_from_settings(self, test_settings):
        app = create_app(test_settings)

        assert isinstance(app.state.repository, MemoryRepository)

    def test_lifespan_closes_repository(self, test_settings):
        repository = RecordingRepository()

        with TestClient(create_app(test_settings, repository)) as client:
            response = client.get(
                "/records", headers={"X-AUTH-TOKEN": test_settings.api_token}
            )
            assert response.status_code == 200
            assert repository.closed is False

        assert repository.closed is True

    def test_log_level_applied(self, repository):
        create_app(Settings(log_level="debug", _env_file=None), repository)

        assert logging.getLogger("shaman").level == logging.DEBUG
