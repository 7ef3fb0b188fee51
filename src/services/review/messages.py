"""Message protocol between the UI surface and the review core.

Every message is a JSON object tagged by `type`. Field names on the wire are
camelCase; Python code uses snake_case attributes.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# UI -> core


class LoadCredentialsCommand(_Message):
    type: Literal["load-credentials"] = "load-credentials"


class StartReviewCommand(_Message):
    type: Literal["start-review"] = "start-review"
    service_key: str | None = Field(default=None, alias="serviceKey")
    publish_token: str | None = Field(default=None, alias="publishToken")
    extra_instruction: str | None = Field(
        default=None, alias="extraInstruction", max_length=2000
    )


class NodeRef(_Message):
    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    name: str | None = None


class SelectionChangedCommand(_Message):
    type: Literal["selection-changed"] = "selection-changed"
    file_key: str = Field(..., alias="fileKey", min_length=1)
    nodes: list[NodeRef] = Field(default_factory=list)


Command = Annotated[
    LoadCredentialsCommand | StartReviewCommand | SelectionChangedCommand,
    Field(discriminator="type"),
]


# core -> UI


class CredentialsLoadedEvent(_Message):
    type: Literal["credentials-loaded"] = "credentials-loaded"
    service_key: str | None = Field(default=None, alias="serviceKey")
    publish_token: str | None = Field(default=None, alias="publishToken")


class ProgressEvent(_Message):
    type: Literal["progress"] = "progress"
    message: str


class ErrorEvent(_Message):
    type: Literal["error"] = "error"
    message: str


class FinishedEvent(_Message):
    type: Literal["finished"] = "finished"


class ResultEvent(_Message):
    type: Literal["result"] = "result"
    text: str


Event = Annotated[
    CredentialsLoadedEvent | ProgressEvent | ErrorEvent | FinishedEvent | ResultEvent,
    Field(discriminator="type"),
]


command_adapter: TypeAdapter[Command] = TypeAdapter(Command)
event_adapter: TypeAdapter[Event] = TypeAdapter(Event)


def parse_command(data: Any) -> Command:
    """Validate an inbound message; raises pydantic.ValidationError."""
    return command_adapter.validate_python(data)


def parse_event(data: Any) -> Event:
    return event_adapter.validate_python(data)
