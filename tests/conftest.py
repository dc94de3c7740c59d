"""
This file contains shared fixtures and configuration for the test suite.

Pytest will automatically discover and use the fixtures defined in this file.

Every test gets its own SQLite database file and a fake media host served
through ``httpx.MockTransport``, so no network or external database is needed.
"""

from collections.abc import Generator
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.helpers import DEFAULT_PASSWORD, login, register
from videotube.config import Settings
from videotube.services.media_storage import MediaStorage


class FakeMediaHost:
    """In-memory stand-in for the Cloudinary upload and destroy endpoints."""

    def __init__(self):
        self.uploads: list[str] = []
        self.destroyed: list[str] = []
        self.failing_resource_types: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        # /v1_1/<cloud>/<resource_type>/<action>
        resource_type, action = request.url.path.rstrip("/").split("/")[-2:]

        if action == "upload":
            if resource_type in self.failing_resource_types:
                return httpx.Response(500, json={"error": {"message": "upload failed"}})
            public_id = f"videotube/{resource_type}-{len(self.uploads) + 1}"
            self.uploads.append(public_id)
            body = {
                "secure_url": f"https://res.cloudinary.com/demo/{resource_type}/upload/{public_id}",
                "public_id": public_id,
                "resource_type": resource_type,
            }
            if resource_type == "video":
                body["duration"] = 12.5
            return httpx.Response(200, json=body)

        if action == "destroy":
            form = parse_qs(request.content.decode())
            self.destroyed.append(form["public_id"][0])
            return httpx.Response(200, json={"result": "ok"})

        return httpx.Response(404, json={"error": {"message": "unknown endpoint"}})


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        APP_ENV="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'videotube.db'}",
        ACCESS_TOKEN_SECRET="test-access-secret",
        REFRESH_TOKEN_SECRET="test-refresh-secret",
        BCRYPT_ROUNDS=4,
        COOKIE_SECURE=False,
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="test-key",
        CLOUDINARY_API_SECRET="test-secret",
        UPLOAD_TEMP_DIR=str(tmp_path / "temp"),
    )


@pytest.fixture
def media_host() -> FakeMediaHost:
    return FakeMediaHost()


@pytest.fixture
def media_storage(test_settings: Settings, media_host: FakeMediaHost) -> MediaStorage:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(media_host.handler))
    return MediaStorage.from_settings(test_settings, http_client=http_client)


@pytest.fixture
def app(test_settings: Settings, media_storage: MediaStorage) -> FastAPI:
    """
    Create a new application instance bound to the per-test database.
    """
    # Import the factory function here to ensure it's fresh for the test.
    from main import create_app

    app_ = create_app(test_settings)
    app_.state.media_storage = media_storage
    return app_


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """
    Fixture to get a test client for making API requests.
    The TestClient handles the application's lifespan events (startup/shutdown).
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(client: TestClient):
    """Register and log in a user, returning its login payload. Cookies are cleared."""

    def _make_user(username: str = "alice", password: str = DEFAULT_PASSWORD) -> dict:
        registered = register(client, username=username, password=password)
        assert registered.status_code == 201, registered.text
        logged_in = login(client, username=username, password=password)
        assert logged_in.status_code == 200, logged_in.text
        client.cookies.clear()
        return logged_in.json()["data"]

    return _make_user
