"""
core/db.py -- Engine construction shared by auth/store.py and blog/store.py.

SQLite needs two tweaks to serve a threaded ASGI app:
  check_same_thread=False -- FastAPI runs sync handlers in a thread pool.
  WAL journal mode        -- readers do not block the single writer.
In-memory databases (tests) skip WAL; it does not apply to them.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if is_sqlite and "mode=memory" not in db_url and ":memory:" not in db_url:
        event.listen(engine, "connect", _set_wal_mode)
    return engine
