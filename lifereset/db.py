from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlparse

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from lifereset.settings import get_settings

logger = logging.getLogger(__name__)

ASYNC_SCHEME = "postgresql+asyncpg"
LOCAL_HOSTS = {"", "localhost", "127.0.0.1"}


def async_database_url(database_url: str) -> str:
    """Point a libpq-style URL at asyncpg, translating ``sslmode`` to ``ssl``."""
    url = str(database_url or "").strip()
    scheme, sep, rest = url.partition("://")
    if not sep or scheme not in {"postgres", "postgresql"}:
        return url
    base, _, query = rest.partition("?")
    params = []
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == "sslmode":
            if value not in {"disable", "allow"}:
                params.append(("ssl", "true"))
        elif key != "channel_binding":
            params.append((key, value))
    tail = f"?{urlencode(params)}" if params else ""
    return f"{ASYNC_SCHEME}://{base}{tail}"


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = async_database_url(get_settings().database_url)
        host = urlparse(url).hostname or ""
        connect_args = {} if host in LOCAL_HOSTS or "ssl=" in url else {"ssl": True}
        logger.info("Connecting to challenge database on %s", host or "local socket")
        _engine = create_async_engine(url, pool_pre_ping=True, connect_args=connect_args)
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory
