from sqlalchemy import BigInteger, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from roomrelay.models.base import Base

class RoomMessage(Base):
    __tablename__ = "room_messages"
    __table_args__ = (
        Index("ix_room_messages_room_seq", "room_id", "seq"),
    )

    room_id: Mapped[str] = mapped_column(Text, ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    id: Mapped[str] = mapped_column(Text, primary_key=True)   # client-assigned

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)  # first-seen order within the room
    user: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # added after the first schema; legacy rows may hold NULL
    timestamp: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(Text, nullable=True)
