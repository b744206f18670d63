"""Shared fixtures: in-memory database, fake storage zone, stubbed LLM client."""

import io
import os
from types import SimpleNamespace
from unittest.mock import MagicMock

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE", "")

import pytest
import requests
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.dependencies import (
    get_llm_service,
    get_remote_backend,
    get_upload_orchestrator,
)
from app.database import Base, get_db
from app.main import app
from app.services.llm_service import LlmService
from app.services.storage import LocalDiskBackend, RemoteCDNBackend
from app.services.upload_orchestrator import TemporaryFileJanitor, UploadOrchestrator

STORAGE_BASE_URL = "https://storage.example.com"
CDN_BASE_URL = "https://cdn.example.com"
STORAGE_ZONE = "test-zone"


# ============================================================================
# Fake storage zone
# ============================================================================


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeStorageSession:
    """
    Stands in for `requests.Session` against the storage API. Objects are kept
    in memory keyed by their path inside the zone.
    """

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.fail_puts = False
        self.fail_lists = False
        self.put_status = 201

    def _key(self, url):
        prefix = f"{STORAGE_BASE_URL}/{STORAGE_ZONE}/"
        assert url.startswith(prefix), url
        return url[len(prefix):]

    def put(self, url, data=None, headers=None, timeout=None):
        self.calls.append(("PUT", url, headers))
        if self.fail_puts:
            raise requests.ConnectionError("storage unreachable")
        if self.put_status >= 300:
            return FakeResponse(self.put_status, text="rejected")
        self.objects[self._key(url)] = bytes(data)
        return FakeResponse(self.put_status)

    def delete(self, url, headers=None, timeout=None):
        self.calls.append(("DELETE", url, headers))
        key = self._key(url)
        if key not in self.objects:
            return FakeResponse(404)
        del self.objects[key]
        return FakeResponse(200)

    def get(self, url, headers=None, timeout=None):
        self.calls.append(("GET", url, headers))
        if self.fail_lists:
            return FakeResponse(500, text="boom")
        prefix = self._key(url)
        entries, seen_dirs = [], set()
        for key, data in self.objects.items():
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if "/" in rest:
                directory = rest.split("/", 1)[0]
                if directory not in seen_dirs:
                    seen_dirs.add(directory)
                    entries.append({"ObjectName": directory, "IsDirectory": True, "Length": 0})
            else:
                entries.append({"ObjectName": rest, "IsDirectory": False, "Length": len(data)})
        return FakeResponse(200, payload=entries)


# ============================================================================
# Images
# ============================================================================


@pytest.fixture
def make_image_bytes():
    """Factory fixture producing encoded test images."""

    def _make(size=(400, 400), mode="RGB", fmt="PNG", color=None):
        if color is None:
            color = (200, 80, 40, 255) if mode == "RGBA" else (200, 80, 40) if mode == "RGB" else 1
        image = Image.new(mode, size, color)
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_bytes(make_image_bytes):
    return make_image_bytes((400, 400))


# ============================================================================
# Storage and upload pipeline
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    return settings.model_copy(update={
        "UPLOAD_DIR": str(tmp_path / "staging"),
        "LOCAL_STORAGE_DIR": str(tmp_path / "public" / "images"),
    })


@pytest.fixture
def storage_session():
    return FakeStorageSession()


@pytest.fixture
def remote_backend(storage_session):
    return RemoteCDNBackend(
        access_key="test-access-key",
        storage_zone=STORAGE_ZONE,
        base_url=STORAGE_BASE_URL,
        cdn_base_url=CDN_BASE_URL,
        timeout=5,
        session=storage_session,
    )


@pytest.fixture
def local_backend(test_settings):
    return LocalDiskBackend(test_settings.LOCAL_STORAGE_DIR, static_route_prefix="/images")


class RecordingJanitor(TemporaryFileJanitor):
    """Keeps track of every staged path it was asked to remove."""

    def __init__(self):
        self.removed = []

    def remove(self, path):
        self.removed.append(path)
        super().remove(path)


@pytest.fixture
def janitor():
    return RecordingJanitor()


@pytest.fixture
def orchestrator(remote_backend, local_backend, test_settings, janitor):
    return UploadOrchestrator(
        backends=[remote_backend, local_backend],
        settings=test_settings,
        janitor=janitor,
    )


# ============================================================================
# Database and application
# ============================================================================


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def genai_client():
    client = MagicMock()
    client.models.generate_content.return_value = SimpleNamespace(text="Hello from the character!")
    client.models.list.return_value = [
        SimpleNamespace(name="models/gemini-2.0-flash"),
        SimpleNamespace(name="models/gemini-1.5-pro"),
    ]
    return client


@pytest.fixture
def llm_service(genai_client):
    return LlmService(api_key=None, default_model="test-model", client=genai_client)


@pytest.fixture
def client(db_session, orchestrator, remote_backend, llm_service):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upload_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_remote_backend] = lambda: remote_backend
    app.dependency_overrides[get_llm_service] = lambda: llm_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return {"x-api-key": settings.ADMIN_API_KEY}


@pytest.fixture
def create_character(client, png_bytes):
    """Factory fixture creating a character through the public API."""

    def _create(name="Test", description="d", personality="p", background=None, **fields):
        data = {"name": name, "description": description, "personality": personality, **fields}
        files = {"image": ("avatar.png", png_bytes, "image/png")}
        if background is not None:
            files["backgroundImage"] = ("background.png", background, "image/png")
        response = client.post("/api/characters", data=data, files=files)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
