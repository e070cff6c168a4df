from roomrelay.models.base import Base
from roomrelay.models.room import Room
from roomrelay.models.message import RoomMessage

__all__ = [
    "Base",
    "Room",
    "RoomMessage",
]
