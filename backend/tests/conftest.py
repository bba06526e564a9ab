"""
Caesar Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── make_model: canned GenerativeService that records its prompts
    ├── make_storage: StorageClient over httpx.MockTransport
    ├── sample_data_uri: tiny JPEG as a base64 data URI
    ├── test_settings: Settings with fake keys and a fake storage URL
    └── make_client: HTTPX AsyncClient bound to an app using a given dispatcher

No test touches the network: Gemini is replaced by FakeModel and the
storage endpoint by an httpx mock transport.
"""

import base64
import json
import os
from typing import Any, Callable, List, Optional

# Set before any app import so the module-level settings never see real secrets
os.environ["CAESAR_ANALYSIS"] = "test-analysis-key"
os.environ["CAESAR_FOLDER"] = "test-folder-key"
os.environ["CAESAR_SEARCH"] = "test-search-key"
os.environ["GAS_WEB_APP_URL"] = "https://script.example.test/macros/s/test/exec"
os.environ["LOG_LEVEL"] = "WARNING"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.exceptions import GenerativeServiceError
from app.schemas.chat import InlineImage
from app.services.llm_base import GenerativeService
from app.services.storage_service import StorageClient

STORAGE_URL = "https://script.example.test/macros/s/test/exec"

# Minimal JPEG: SOI + JFIF header + EOI
SAMPLE_JPEG = (
    b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
    b'\xff\xd9'
)


class FakeModel(GenerativeService):
    """
    GenerativeService returning queued answers.

    Each queued item is either a string / None (returned) or an Exception
    (raised as GenerativeServiceError). Calls are recorded as (prompt, image).
    """

    def __init__(self, answers: Optional[List[Any]] = None):
        self.answers = list(answers or [])
        self.calls: List[tuple] = []

    async def generate_text(self, prompt: str, image: Optional[InlineImage] = None):
        self.calls.append((prompt, image))
        answer = self.answers.pop(0) if self.answers else None
        if isinstance(answer, Exception):
            raise GenerativeServiceError(message=str(answer))
        return answer


class RecordingHandler:
    """httpx.MockTransport handler that records JSON bodies and replies from a callable."""

    def __init__(self, reply: Callable[[dict], httpx.Response]):
        self.reply = reply
        self.bodies: List[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.bodies.append(body)
        return self.reply(body)


@pytest.fixture
def make_model():
    """Factory: make_model(["answer", None, RuntimeError("boom")]) → FakeModel."""
    return FakeModel


@pytest.fixture
def make_storage():
    """
    Factory returning (StorageClient, RecordingHandler).

    `reply` is either a JSON-serializable object (sent with status 200) or a
    callable body → httpx.Response.
    """

    def _make(reply: Any = None, url: str = STORAGE_URL):
        if callable(reply):
            responder = reply
        else:
            responder = lambda body: httpx.Response(200, json=reply)  # noqa: E731
        handler = RecordingHandler(responder)
        client = StorageClient(url, transport=httpx.MockTransport(handler))
        return client, handler

    return _make


@pytest.fixture
def sample_data_uri():
    return "data:image/jpeg;base64," + base64.b64encode(SAMPLE_JPEG).decode("ascii")


@pytest.fixture
def test_settings():
    return Settings(
        caesar_analysis="test-analysis-key",
        caesar_folder="test-folder-key",
        caesar_search="test-search-key",
        gas_web_app_url=STORAGE_URL,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def make_client(test_settings):
    """
    Provides a factory for HTTPX AsyncClients talking to a fresh app.

    Usage:
        client = await make_client(dispatcher)
        response = await client.post("/api/chat", json={"action": "getFolders"})
    """
    from app.main import create_app
    from app.routes.chat import get_dispatcher

    clients = []

    async def _make(dispatcher=None):
        app = create_app(test_settings)
        if dispatcher is not None:
            app.dependency_overrides[get_dispatcher] = lambda: dispatcher
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
