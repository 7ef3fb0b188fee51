"""Wiring of one document session: channels, host bindings, and the controller."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from core.config import Settings, get_settings
from dependencies.db import get_session_factory
from services.review.bridge import (
    ChannelNotifier,
    CommandChannel,
    EventChannel,
    SessionSelection,
)
from services.review.controller import ReviewPipelineController
from services.review.credentials import CredentialCache, SqlKeyValueStore
from services.review.exporter import FigmaImageExporter
from services.review.interfaces import PublisherProtocol
from services.review.publisher import FigmaCommentPublisher, UiResultPublisher
from services.review.vision_client import GeminiVisionClient


@dataclass(slots=True)
class ReviewSession:
    commands: CommandChannel
    events: EventChannel
    selection: SessionSelection
    controller: ReviewPipelineController


@lru_cache
def get_credential_cache() -> CredentialCache:
    """Process-wide credential cache shared by every session."""
    return CredentialCache(SqlKeyValueStore(get_session_factory()))


def build_session(
    *,
    settings: Settings | None = None,
    credentials: CredentialCache | None = None,
) -> ReviewSession:
    settings = settings or get_settings()
    events = EventChannel()
    selection = SessionSelection()

    publisher: PublisherProtocol
    if settings.REVIEW_PUBLISH_MODE == "result":
        publisher = UiResultPublisher(events)
        success_message = "Review ready."
    else:
        publisher = FigmaCommentPublisher(base_url=settings.FIGMA_API_BASE_URL)
        success_message = "Review posted as a comment."

    controller = ReviewPipelineController(
        credentials=credentials or get_credential_cache(),
        selection_source=selection,
        exporter=FigmaImageExporter(
            base_url=settings.FIGMA_API_BASE_URL, scale=settings.EXPORT_SCALE
        ),
        vision_client=GeminiVisionClient(
            model=settings.GEMINI_MODEL,
            base_url=settings.GEMINI_API_BASE_URL,
            max_attempts=settings.REVIEW_MAX_RETRIES,
            base_delay_ms=settings.REVIEW_BACKOFF_BASE_MS,
        ),
        publisher=publisher,
        notifier=ChannelNotifier(events),
        events=events,
        success_message=success_message,
    )
    return ReviewSession(
        commands=CommandChannel(),
        events=events,
        selection=selection,
        controller=controller,
    )
