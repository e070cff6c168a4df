from __future__ import annotations

from typing import Iterable

from roomrelay.schemas.ws import ChatMessage


class RoomLog:
    """
    In-memory ordered copy of one room's messages.

    Order is first-seen order of ids. Merging an id that is already present
    replaces the entry where it stands; a dict keyed by id gives exactly that.
    """

    def __init__(self) -> None:
        self._messages: dict[str, ChatMessage] = {}

    def load(self, messages: Iterable[ChatMessage]) -> None:
        self._messages = {m.id: m for m in messages}

    def merge(self, message: ChatMessage) -> None:
        self._messages[message.id] = message

    def snapshot(self) -> list[ChatMessage]:
        return list(self._messages.values())

    def get(self, message_id: str) -> ChatMessage | None:
        return self._messages.get(message_id)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._messages

    def __len__(self) -> int:
        return len(self._messages)
