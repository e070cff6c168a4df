from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel
from typing import List


class RoomOut(BaseModel):
    room_id: str
    created_at: datetime | None = None
    participant_count: int = 0


class RoomListOut(BaseModel):
    rooms: List[RoomOut]
