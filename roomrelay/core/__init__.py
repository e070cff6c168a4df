from roomrelay.core.config import settings
from roomrelay.core.db import AsyncSessionLocal, engine, get_db

__all__ = ["settings", "engine", "AsyncSessionLocal", "get_db"]
