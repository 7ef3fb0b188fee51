"""Capability interfaces the review pipeline depends on.

The controller only talks to these protocols, never to a concrete host binding
or HTTP client.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from services.review.models import (
    PublishTarget,
    ReviewRequest,
    ReviewResult,
    SelectedNode,
    Selection,
)


# Called before each backoff wait with the wait in seconds and a user-facing
# notice.
RetryNoticeFn = Callable[[float, str], Awaitable[None]]


class KeyValueStoreProtocol(Protocol):
    """Process-wide storage for opaque string values."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""
        ...


class SelectionSourceProtocol(Protocol):
    """The host's view of what the user currently has selected."""

    @property
    def file_key(self) -> str:
        """Identifier of the document the selection belongs to."""
        ...

    async def current_selection(self) -> Sequence[SelectedNode]:
        """Return the currently selected nodes (possibly empty)."""
        ...


class ExporterProtocol(Protocol):
    """Render an accepted selection to PNG bytes."""

    async def export_png(self, selection: Selection, token: str) -> bytes:
        """Export the selected node; raise ExportFailureError on failure."""
        ...


class VisionClientProtocol(Protocol):
    """Generative vision service client."""

    async def generate(
        self, request: ReviewRequest, on_retry: RetryNoticeFn | None = None
    ) -> ReviewResult:
        """Return the review text; raise ServiceError subclasses on failure."""
        ...


class NotifierProtocol(Protocol):
    """User-visible progress notices."""

    async def notify(self, message: str) -> None:
        """Show a short, non-error notice to the user."""
        ...


class PublisherProtocol(Protocol):
    """Terminal action for a successful review."""

    async def publish(self, token: str, target: PublishTarget, message: str) -> None:
        """Publish `message` for `target`; raise PublishError on failure."""
        ...
