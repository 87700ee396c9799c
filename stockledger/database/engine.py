import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from stockledger.config import Settings, get_settings


app_settings: Settings = get_settings()
logger = logging.getLogger(__name__)

_SQLITE_BUSY_TIMEOUT_SECONDS = 30
_SQLITE_BUSY_TIMEOUT_MS = _SQLITE_BUSY_TIMEOUT_SECONDS * 1000

# Execution option marking a connection that will write to the ledger.
WRITE_INTENT = "stockledger_write_intent"


def _is_sqlite_memory(url) -> bool:
    if url.database in (None, "", ":memory:"):
        return True
    return url.query.get("mode") == "memory"


def make_engine(database_url: str) -> Engine:
    db_url = make_url(database_url)
    is_sqlite = db_url.get_backend_name() == "sqlite"
    is_sqlite_memory = is_sqlite and _is_sqlite_memory(db_url)

    connect_args = {}
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT_SECONDS}
        if is_sqlite_memory:
            engine_kwargs.update(poolclass=StaticPool)

    new_engine = create_engine(
        database_url,
        connect_args=connect_args,
        **engine_kwargs,
    )

    if is_sqlite:
        @event.listens_for(new_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _connection_record):
            # Transactions are begun by the "begin" listener below, not by pysqlite.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
                if not is_sqlite_memory:
                    try:
                        cursor.execute("PRAGMA journal_mode=WAL")
                        cursor.execute("PRAGMA synchronous=NORMAL")
                    except sqlite3.DatabaseError:
                        logger.warning("Unable to enable WAL journal for %s", db_url.database)
            finally:
                cursor.close()

        @event.listens_for(new_engine, "begin")
        def _begin(conn):
            # Readers keep SQLite's deferred BEGIN and never block writers.
            if conn.get_execution_options().get(WRITE_INTENT):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

    return new_engine


engine = make_engine(app_settings.DATABASE_URL)
