from datetime import datetime
from sqlalchemy import DateTime, Index, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from roomrelay.models.base import Base

class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        Index("ix_rooms_created_at", "created_at"),
    )

    # first path segment of the connection url
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
