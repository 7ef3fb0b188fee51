"""Terminal publication strategies for a finished review."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core.config import get_settings
from services.review.bridge import EventChannel
from services.review.exceptions import PublishError
from services.review.interfaces import PublisherProtocol
from services.review.messages import ResultEvent
from services.review.models import PublishTarget


logger = logging.getLogger(__name__)


def build_comment_body(target: PublishTarget, message: str) -> dict[str, Any]:
    return {
        "message": message,
        "client_meta": {
            "node_id": target.node_id,
            "node_offset": {"x": target.offset_x, "y": target.offset_y},
        },
        "pinned_node": target.node_id,
    }


class FigmaCommentPublisher(PublisherProtocol):
    """Post the review as a comment pinned to the reviewed node.

    One outbound call per review, no retry: a failure ends the run and the
    user re-invokes the pipeline.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.FIGMA_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._http_client = http_client

    async def publish(self, token: str, target: PublishTarget, message: str) -> None:
        url = f"{self.base_url}/files/{target.file_key}/comments"
        body = build_comment_body(target, message)
        headers = {"X-Figma-Token": token}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    url, json=body, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("Comment publish failed: %s", type(exc).__name__)
            raise PublishError("transport") from exc

        if not response.is_success:
            logger.warning("Comment publish rejected: %s", response.status_code)
            raise PublishError(response.status_code)


class UiResultPublisher(PublisherProtocol):
    """Return the review text to the UI instead of posting a comment."""

    def __init__(self, events: EventChannel) -> None:
        self._events = events

    async def publish(self, token: str, target: PublishTarget, message: str) -> None:
        await self._events.send(ResultEvent(text=message))
