"""Shared test fixtures for pytest.

Environment defaults are set before any application module is imported so the
cached settings never read a developer's `.env` file.
"""

import os
from collections.abc import Callable, Sequence
from typing import Any

import httpx
import pytest


os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from core.config import get_settings
from services.review.bridge import ChannelNotifier, EventChannel, SessionSelection
from services.review.controller import ReviewPipelineController
from services.review.credentials import CredentialCache, InMemoryKeyValueStore
from services.review.exceptions import ExportFailureError
from services.review.models import PublishTarget, SelectedNode, Selection
from services.review.vision_client import GeminiVisionClient


get_settings.cache_clear()

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
FILE_KEY = "FILEKEY123"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested waits."""

    def __init__(self) -> None:
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(float(seconds))


class FakeExporter:
    def __init__(self, result: bytes = PNG_BYTES, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[Selection, str]] = []

    async def export_png(self, selection: Selection, token: str) -> bytes:
        self.calls.append((selection, token))
        if self.error is not None:
            raise self.error
        return self.result


class UnavailableStore:
    """Key-value store whose backend fails with an arbitrary error."""

    async def get(self, key: str) -> str | None:
        raise RuntimeError("store down")

    async def set(self, key: str, value: str) -> None:
        raise RuntimeError("store down")


class RecordingPublisher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, PublishTarget, str]] = []

    async def publish(self, token: str, target: PublishTarget, message: str) -> None:
        self.calls.append((token, target, message))
        if self.error is not None:
            raise self.error


def gemini_response(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class ScriptedTransport:
    """Serve queued responses in order and record every request."""

    def __init__(self, responses: Sequence[httpx.Response | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError("unexpected extra request")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def events() -> EventChannel:
    return EventChannel()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def credential_cache(store: InMemoryKeyValueStore) -> CredentialCache:
    return CredentialCache(store)


@pytest.fixture
def stored_credentials(store: InMemoryKeyValueStore) -> InMemoryKeyValueStore:
    """Store pre-populated with both secrets under their fixed keys."""
    store._values.update({"gemini_api_key": "stored-key", "figma_token": "stored-token"})
    return store


@pytest.fixture
def frame_selection() -> SessionSelection:
    return SessionSelection(FILE_KEY, [SelectedNode(id="1:2", kind="FRAME")])


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_controller(
    events: EventChannel,
    credential_cache: CredentialCache,
    frame_selection: SessionSelection,
    recording_sleep: RecordingSleep,
) -> Callable[..., ReviewPipelineController]:
    """Build a controller whose vision client talks to a scripted transport."""

    def _make(
        *,
        responses: Sequence[httpx.Response | Exception] = (),
        transport: ScriptedTransport | None = None,
        selection: SessionSelection | None = None,
        exporter: FakeExporter | None = None,
        publisher: RecordingPublisher | None = None,
        credentials: CredentialCache | None = None,
    ) -> ReviewPipelineController:
        transport = transport or ScriptedTransport(responses)
        return ReviewPipelineController(
            credentials=credentials or credential_cache,
            selection_source=selection or frame_selection,
            exporter=exporter or FakeExporter(),
            vision_client=GeminiVisionClient(
                model="test-model",
                base_url="https://vision.test/v1beta",
                max_attempts=3,
                base_delay_ms=1000,
                http_client=transport.client(),
                sleep=recording_sleep,
            ),
            publisher=publisher or RecordingPublisher(),
            notifier=ChannelNotifier(events),
            events=events,
        )

    return _make


@pytest.fixture
def export_failure() -> ExportFailureError:
    return ExportFailureError("HTTP 404")
