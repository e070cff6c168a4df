from __future__ import annotations

from typing import Annotated, Literal, List, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


Role = Literal["user", "assistant"]   # clients only produce "user" today

# stands in for a timestamp the sender left out, and for rows stored before
# the timestamp column existed
LEGACY_TIMESTAMP = "1970-01-01T00:00:00.000Z"


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    user: str
    role: Role
    content: str
    timestamp: str = LEGACY_TIMESTAMP   # ISO-8601, set by the sender and never rewritten here
    color: str | None = None


# ---- client <-> server ----

class AddEvent(ChatMessage):
    type: Literal["add"] = "add"


class UpdateEvent(ChatMessage):
    type: Literal["update"] = "update"


# ---- server -> client only ----

class AllEvent(BaseModel):
    type: Literal["all"] = "all"
    messages: List[ChatMessage] = []


ChatEvent = Annotated[Union[AddEvent, UpdateEvent, AllEvent], Field(discriminator="type")]

chat_event_adapter: TypeAdapter[ChatEvent] = TypeAdapter(ChatEvent)


def to_message(event: AddEvent | UpdateEvent) -> ChatMessage:
    """Strip the event tag, keeping the message payload."""
    return ChatMessage.model_validate(event.model_dump(exclude={"type"}))
