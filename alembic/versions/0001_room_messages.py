"""rooms and room_messages

Revision ID: 0001_room_messages
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_room_messages"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rooms",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_rooms_created_at", "rooms", ["created_at"])

    op.create_table(
        "room_messages",
        sa.Column("room_id", sa.Text(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("seq", sa.BigInteger(), nullable=False),
        sa.Column("user", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
    )
    op.create_index("ix_room_messages_room_seq", "room_messages", ["room_id", "seq"])


def downgrade() -> None:
    op.drop_index("ix_room_messages_room_seq", table_name="room_messages")
    op.drop_table("room_messages")
    op.drop_index("ix_rooms_created_at", table_name="rooms")
    op.drop_table("rooms")
