"""
Per-tenant shard stores.

Each tenant owns one SQLite file, ``<TENANT_DB_DIR>/<tenant_id>.db``, holding
its players, competitions and score rows. Shards are independent of the
directory store and of each other; nothing here ever spans two shards.
"""
import os
import threading
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, Session

from app.errors import NotFoundError

ShardModel = declarative_base()

_engines = {}
_engines_lock = threading.Lock()


def _config(app=None):
    return (app or current_app).config


def shard_path(tenant_id, app=None):
    return os.path.join(_config(app)["TENANT_DB_DIR"], f"{int(tenant_id)}.db")


def _set_sqlite_pragmas(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def shard_engine(tenant_id, app=None):
    path = shard_path(tenant_id, app)
    with _engines_lock:
        engine = _engines.get(path)
        if engine is None:
            engine = create_engine(
                f"sqlite:///{path}",
                connect_args={
                    "timeout": _config(app)["TENANT_DB_BUSY_TIMEOUT"],
                    "check_same_thread": False,
                },
            )
            event.listen(engine, "connect", _set_sqlite_pragmas)
            _engines[path] = engine
        return engine


def create_shard(tenant_id, app=None):
    """Provision the shard file and its schema for a new tenant."""
    # Import for table registration on ShardModel.metadata
    from app.models import player, competition, playerScore  # noqa: F401

    os.makedirs(_config(app)["TENANT_DB_DIR"], exist_ok=True)
    ShardModel.metadata.create_all(shard_engine(tenant_id, app))


@contextmanager
def shard_session(tenant_id, app=None):
    """
    Session bound to one tenant's shard. Commits are explicit; anything left
    uncommitted when the scope exits (normally or through an error) is
    rolled back.
    """
    path = shard_path(tenant_id, app)
    if not os.path.exists(path):
        raise NotFoundError(f"tenant shard not found: {tenant_id}")

    session = Session(shard_engine(tenant_id, app), expire_on_commit=False)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_shard_engines():
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()
