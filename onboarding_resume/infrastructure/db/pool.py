from __future__ import annotations

from psycopg_pool import AsyncConnectionPool


def _add_connect_timeout(dsn: str, seconds: int = 3) -> str:
    if "connect_timeout=" in dsn:
        return dsn
    sep = "&" if "?" in dsn else "?"
    return f"{dsn}{sep}connect_timeout={seconds}"


def create_pool(
    database_url: str, *, min_size: int = 1, max_size: int = 10, timeout: float = 5
) -> AsyncConnectionPool:
    """
    Build a pool WITHOUT opening it. The application lifespan owns it:
    opens it at startup, stores it on app.state, closes it at shutdown.
    """
    return AsyncConnectionPool(
        _add_connect_timeout(database_url),
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        open=False,
    )
