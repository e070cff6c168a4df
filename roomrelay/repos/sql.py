from __future__ import annotations

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: AsyncSession):
    """Return the dialect's ``insert`` construct, which supports ON CONFLICT."""
    name = db.get_bind().dialect.name
    try:
        return _INSERTS[name]
    except KeyError:
        raise NotImplementedError(f"upsert not supported on {name!r}") from None
