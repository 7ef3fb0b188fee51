"""WebSocket bridge between the plugin UI and the review pipeline.

One connection is one document session. Inbound JSON messages are validated
into commands and queued on the session's command channel; events emitted by
the controller are written back in order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from services.review.controller import GENERIC_FAILURE_MESSAGE
from services.review.messages import ErrorEvent, parse_command
from services.review.session import ReviewSession, build_session


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["review"])

SessionBuilder = Callable[[], ReviewSession]


def get_session_builder() -> SessionBuilder:
    """Dependency returning the factory for new document sessions."""
    return build_session


async def _pump_events(websocket: WebSocket, session: ReviewSession) -> None:
    async for event in session.events:
        await websocket.send_json(event.to_wire())


async def _dispatch_commands(session: ReviewSession) -> None:
    async for command in session.commands:
        try:
            await session.controller.handle(command)
        except Exception:  # noqa: BLE001
            logger.exception("Review command %s failed", command.type)
            await session.events.send(ErrorEvent(message=GENERIC_FAILURE_MESSAGE))


@router.websocket("/ws")
async def review_socket(
    websocket: WebSocket,
    session_builder: Annotated[SessionBuilder, Depends(get_session_builder)],
) -> None:
    await websocket.accept()
    session = session_builder()
    sender = asyncio.create_task(_pump_events(websocket, session))
    dispatcher = asyncio.create_task(_dispatch_commands(session))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                command = parse_command(json.loads(raw))
            except (ValueError, ValidationError) as exc:
                logger.info("Rejected UI message: %s", type(exc).__name__)
                await session.events.send(ErrorEvent(message="Unrecognized message."))
                continue
            await session.commands.send(command)
    except WebSocketDisconnect:
        logger.debug("Review session disconnected")
    finally:
        abandoned = session.controller.abandon()
        session.commands.close()
        session.events.close()
        tasks: list[asyncio.Task[Any]] = [dispatcher, sender]
        for task in tasks:
            task.cancel()
        if abandoned is not None:
            tasks.append(abandoned)
        await asyncio.gather(*tasks, return_exceptions=True)
