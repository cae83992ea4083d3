"""Shared SQLAlchemy engine for the result store.

One engine per process, bound to the first URL it is asked for
(``database_url=`` or ``DATABASE_URL``). :func:`dispose_engine` unbinds it.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None


def _engine_kwargs(url: str) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if make_url(url).get_backend_name() == "sqlite":
        # Stores are shared across worker threads in the CLI.
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


def get_engine(*, database_url: str | None = None) -> Engine:
    global _ENGINE, _SESSION_MAKER
    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set")
    if _ENGINE is None:
        _ENGINE = create_engine(url, **_engine_kwargs(url))
        _SESSION_MAKER = sessionmaker(bind=_ENGINE, expire_on_commit=False)
    elif make_url(url) != _ENGINE.url:
        raise RuntimeError("engine is bound to another database; call dispose_engine() first")
    return _ENGINE


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error."""

    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None
    session = _SESSION_MAKER()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None


__all__ = ["dispose_engine", "get_engine", "session_scope"]
