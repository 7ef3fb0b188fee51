"""Review pipeline controller.

Drives one document session: answers credential queries, tracks the host
selection, and runs at most one review at a time through

    validate selection -> export -> request (with retries) -> sanitize -> publish

Every stage failure is caught here and reported to the UI as a single `error`
event followed by `finished`.
"""

from __future__ import annotations

import asyncio
import logging

from core.error_handler import StructuredLogger, set_correlation_id
from services.review.bridge import EventChannel, SessionSelection
from services.review.credentials import CredentialCache
from services.review.exceptions import MissingCredentialError, ReviewPipelineError
from services.review.interfaces import (
    ExporterProtocol,
    NotifierProtocol,
    PublisherProtocol,
    SelectionSourceProtocol,
    VisionClientProtocol,
)
from services.review.messages import (
    Command,
    CredentialsLoadedEvent,
    ErrorEvent,
    FinishedEvent,
    LoadCredentialsCommand,
    SelectionChangedCommand,
    StartReviewCommand,
)
from services.review.models import (
    PUBLISH_TOKEN,
    SERVICE_KEY,
    Credentials,
    PipelineState,
    PublishTarget,
    ReviewRequest,
    RunContext,
    RunOutcome,
    SelectedNode,
)
from services.review.prompts import REVIEW_PROMPT, build_prompt
from services.review.sanitizer import clean
from services.review.selection import validate_selection


logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to get review. Please try again."


class ReviewPipelineController:
    def __init__(
        self,
        *,
        credentials: CredentialCache,
        selection_source: SelectionSourceProtocol,
        exporter: ExporterProtocol,
        vision_client: VisionClientProtocol,
        publisher: PublisherProtocol,
        notifier: NotifierProtocol,
        events: EventChannel,
        prompt_template: str = REVIEW_PROMPT,
        success_message: str = "Review posted as a comment.",
    ) -> None:
        self.credentials = credentials
        self.selection_source = selection_source
        self.exporter = exporter
        self.vision_client = vision_client
        self.publisher = publisher
        self.notifier = notifier
        self.events = events
        self.prompt_template = prompt_template
        self.success_message = success_message

        self._active: RunContext | None = None
        self._last: RunContext | None = None
        self._task: asyncio.Task[RunOutcome | None] | None = None

    @property
    def is_active(self) -> bool:
        return self._active is not None

    @property
    def state(self) -> PipelineState:
        run = self._active or self._last
        return run.state if run is not None else PipelineState.IDLE

    @property
    def last_run(self) -> RunContext | None:
        return self._last

    async def handle(self, command: Command) -> None:
        """Dispatch one inbound command."""
        if isinstance(command, LoadCredentialsCommand):
            stored = await self.credentials.load_all()
            await self.events.send(
                CredentialsLoadedEvent(
                    service_key=stored.service_key,
                    publish_token=stored.publish_token,
                )
            )
        elif isinstance(command, StartReviewCommand):
            self.start(command)
        elif isinstance(command, SelectionChangedCommand):
            self._update_selection(command)

    def start(self, command: StartReviewCommand) -> asyncio.Task[RunOutcome | None] | None:
        """Schedule a run unless one is already active."""
        if self.is_active:
            logger.info("Ignoring start-review: a review is already running")
            return None
        # Claim the slot before yielding to the loop so a second command
        # handled before the task starts is ignored too.
        self._active = RunContext()
        self._task = asyncio.create_task(self.run(command, context=self._active))
        return self._task

    async def wait_idle(self) -> None:
        """Wait for the scheduled run, if any, to finish."""
        if self._task is not None:
            await self._task

    def abandon(self) -> asyncio.Task[RunOutcome | None] | None:
        """Cancel the in-flight run, returning its task so the caller can await it."""
        if self._task is None or self._task.done():
            return None
        self._task.cancel()
        return self._task

    async def run(
        self, command: StartReviewCommand, *, context: RunContext | None = None
    ) -> RunOutcome | None:
        """Execute one review run to completion; returns None if one is active."""
        if context is None:
            if self.is_active:
                logger.info("Ignoring start-review: a review is already running")
                return None
            context = RunContext()
            self._active = context
        set_correlation_id(context.run_id)
        structured_logger.info("Review run started", run_id=context.run_id)

        try:
            await self._execute(command, context)
        except ReviewPipelineError as exc:
            await self._fail(context, exc, exc.message)
        except Exception as exc:  # noqa: BLE001
            structured_logger.exception(
                "Review run crashed", exception_type=type(exc).__name__
            )
            await self._fail(context, None, GENERIC_FAILURE_MESSAGE)
        finally:
            self._last = context
            self._active = None
            await self.events.send(FinishedEvent())

        return RunOutcome(
            run_id=context.run_id,
            state=context.state,
            message=(
                context.failure.message if context.failure else self.success_message
            ),
            failure=context.failure,
        )

    async def _execute(self, command: StartReviewCommand, context: RunContext) -> None:
        credentials = await self._resolve_credentials(command)

        context.transition(PipelineState.VALIDATING_SELECTION)
        nodes = await self.selection_source.current_selection()
        selection = validate_selection(self.selection_source.file_key, nodes)
        context.selection = selection

        context.transition(PipelineState.EXPORTING)
        await self.notifier.notify("Exporting selection...")
        image_bytes = await self.exporter.export_png(
            selection, credentials.publish_token
        )

        context.transition(PipelineState.REQUESTING)
        await self.notifier.notify("Requesting review...")

        async def on_retry(wait_seconds: float, message: str) -> None:
            context.transition(PipelineState.RETRYING)
            context.retry_notices.append(wait_seconds)
            await self.notifier.notify(message)
            context.transition(PipelineState.REQUESTING)

        result = await self.vision_client.generate(
            ReviewRequest(
                image_bytes=image_bytes,
                prompt=build_prompt(command.extra_instruction, self.prompt_template),
                service_key=credentials.service_key,
            ),
            on_retry,
        )
        message = clean(result.raw_text)

        context.transition(PipelineState.PUBLISHING)
        await self.publisher.publish(
            credentials.publish_token,
            PublishTarget(file_key=selection.file_key, node_id=selection.node.id),
            message,
        )

        context.transition(PipelineState.SUCCEEDED)
        structured_logger.info(
            "Review run succeeded",
            node_id=selection.node.id,
            retries=len(context.retry_notices),
        )
        await self.notifier.notify(self.success_message)

    async def _resolve_credentials(self, command: StartReviewCommand) -> Credentials:
        supplied = {
            SERVICE_KEY: (command.service_key or "").strip() or None,
            PUBLISH_TOKEN: (command.publish_token or "").strip() or None,
        }
        resolved: dict[str, str | None] = {}
        for name, value in supplied.items():
            if value is not None:
                await self.credentials.save(name, value)
                resolved[name] = value
            else:
                resolved[name] = await self.credentials.load(name)

        credentials = Credentials(**resolved)
        missing = credentials.missing()
        if missing:
            raise MissingCredentialError(missing)
        return credentials

    async def _fail(
        self, context: RunContext, error: ReviewPipelineError | None, message: str
    ) -> None:
        context.failure = error
        if not context.state.is_terminal:
            context.transition(PipelineState.FAILED)
        structured_logger.warning(
            "Review run failed",
            error_code=error.error_code if error else "internal_error",
            stage=error.stage if error else "internal",
        )
        await self.events.send(ErrorEvent(message=message))

    def _update_selection(self, command: SelectionChangedCommand) -> None:
        if not isinstance(self.selection_source, SessionSelection):
            logger.debug("Selection source is host-managed; ignoring update")
            return
        self.selection_source.update(
            command.file_key,
            [SelectedNode(id=n.id, kind=n.type, name=n.name) for n in command.nodes],
        )

