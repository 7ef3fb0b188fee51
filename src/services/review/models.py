"""Typed value objects passed between review pipeline stages."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import StrEnum

from services.review.exceptions import ReviewPipelineError


SERVICE_KEY = "service_key"
PUBLISH_TOKEN = "publish_token"

# Node kinds accepted for review (the host's container node types)
ACCEPTED_NODE_KINDS: frozenset[str] = frozenset({"FRAME", "COMPONENT", "INSTANCE"})


class PipelineState(StrEnum):
    IDLE = "idle"
    VALIDATING_SELECTION = "validating_selection"
    EXPORTING = "exporting"
    REQUESTING = "requesting"
    RETRYING = "retrying"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {PipelineState.SUCCEEDED, PipelineState.FAILED}


@dataclass(frozen=True, slots=True)
class Credentials:
    service_key: str | None = None
    publish_token: str | None = None

    def missing(self) -> tuple[str, ...]:
        """Names of every absent secret; empty when both are present."""
        names: list[str] = []
        if not self.service_key:
            names.append(SERVICE_KEY)
        if not self.publish_token:
            names.append(PUBLISH_TOKEN)
        return tuple(names)


@dataclass(frozen=True, slots=True)
class SelectedNode:
    id: str
    kind: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class Selection:
    """Exactly one accepted node inside one host document."""

    file_key: str
    node: SelectedNode


@dataclass(frozen=True, slots=True)
class ReviewRequest:
    image_bytes: bytes
    prompt: str
    service_key: str


@dataclass(frozen=True, slots=True)
class RetryState:
    """Retry bookkeeping for one service call, advanced by value.

    `attempt` counts retries already performed; the wait before retry
    number `attempt` is `base_delay_ms * 2**attempt` (1s, 2s, 4s by default).
    """

    attempt: int = 0
    max_attempts: int = 3
    base_delay_ms: int = 1000

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_attempts

    @property
    def backoff_ms(self) -> int:
        return self.base_delay_ms * 2**self.attempt

    def next(self) -> RetryState:
        return replace(self, attempt=self.attempt + 1)


@dataclass(frozen=True, slots=True)
class ReviewResult:
    raw_text: str


@dataclass(frozen=True, slots=True)
class PublishTarget:
    file_key: str
    node_id: str
    offset_x: float = 0
    offset_y: float = 0


@dataclass(slots=True)
class RunContext:
    """State owned by the controller for the lifetime of one review run."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=list)
    selection: Selection | None = None
    retry_notices: list[float] = field(default_factory=list)
    failure: ReviewPipelineError | None = None

    def transition(self, state: PipelineState) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"run {self.run_id} already ended in {self.state}")
        self.state = state
        self.history.append(state)


@dataclass(frozen=True, slots=True)
class RunOutcome:
    run_id: str
    state: PipelineState
    message: str | None = None
    failure: ReviewPipelineError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.SUCCEEDED
