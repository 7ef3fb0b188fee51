"""Tests for the UI message protocol and channels."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from services.review.bridge import (
    ChannelClosed,
    ChannelNotifier,
    CommandChannel,
    EventChannel,
    SessionSelection,
)
from services.review.messages import (
    CredentialsLoadedEvent,
    FinishedEvent,
    LoadCredentialsCommand,
    ProgressEvent,
    SelectionChangedCommand,
    StartReviewCommand,
    parse_command,
    parse_event,
)
from services.review.models import SelectedNode


class TestParseCommand:
    def test_load_credentials(self) -> None:
        assert parse_command({"type": "load-credentials"}) == LoadCredentialsCommand()

    def test_start_review_camel_case_fields(self) -> None:
        command = parse_command(
            {
                "type": "start-review",
                "serviceKey": "k",
                "publishToken": "t",
                "extraInstruction": "Be brief",
            }
        )
        assert isinstance(command, StartReviewCommand)
        assert command.service_key == "k"
        assert command.publish_token == "t"
        assert command.extra_instruction == "Be brief"

    def test_start_review_all_optional(self) -> None:
        command = parse_command({"type": "start-review"})
        assert isinstance(command, StartReviewCommand)
        assert command.service_key is None

    def test_selection_changed(self) -> None:
        command = parse_command(
            {
                "type": "selection-changed",
                "fileKey": "FILE",
                "nodes": [{"id": "1:2", "type": "FRAME", "name": "Home"}],
            }
        )
        assert isinstance(command, SelectionChangedCommand)
        assert command.nodes[0].type == "FRAME"

    @pytest.mark.parametrize(
        "data",
        [{}, {"type": "explode"}, {"type": "selection-changed"}, "start-review", None],
    )
    def test_rejects_unknown_or_invalid(self, data: object) -> None:
        with pytest.raises(ValidationError):
            parse_command(data)


class TestEvents:
    def test_wire_form_omits_absent_fields(self) -> None:
        assert CredentialsLoadedEvent(service_key="k").to_wire() == {
            "type": "credentials-loaded",
            "serviceKey": "k",
        }
        assert FinishedEvent().to_wire() == {"type": "finished"}

    def test_parse_event(self) -> None:
        assert parse_event({"type": "progress", "message": "hi"}) == ProgressEvent(
            message="hi"
        )


class TestMessageChannel:
    @pytest.mark.asyncio
    async def test_delivers_in_send_order(self) -> None:
        channel = EventChannel()
        for i in range(3):
            await channel.send(ProgressEvent(message=str(i)))
        channel.close()

        received = [event async for event in channel]

        assert [e.message for e in received] == ["0", "1", "2"]

    @pytest.mark.asyncio
    async def test_send_after_close_is_dropped(self) -> None:
        channel = CommandChannel()
        channel.close()
        await channel.send(LoadCredentialsCommand())

        with pytest.raises(ChannelClosed):
            await channel.receive()

    @pytest.mark.asyncio
    async def test_receive_waits_for_send(self) -> None:
        channel = CommandChannel()
        waiter = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)
        assert not waiter.done()

        await channel.send(LoadCredentialsCommand())

        assert await waiter == LoadCredentialsCommand()

    @pytest.mark.asyncio
    async def test_notifier_emits_progress(self, events: EventChannel) -> None:
        await ChannelNotifier(events).notify("Working")
        assert events.drain() == [ProgressEvent(message="Working")]


class TestSessionSelection:
    @pytest.mark.asyncio
    async def test_update_replaces_selection(self) -> None:
        selection = SessionSelection()
        assert await selection.current_selection() == ()

        selection.update("FILE", [SelectedNode(id="1:2", kind="FRAME")])

        assert selection.file_key == "FILE"
        assert list(await selection.current_selection()) == [
            SelectedNode(id="1:2", kind="FRAME")
        ]
