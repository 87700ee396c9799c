from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.orm import Session, sessionmaker

from stockledger.database.engine import WRITE_INTENT, engine

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_write(db: Session) -> Session:
    """Start the session's transaction as a writer.

    Must run before the first statement. On SQLite the transaction then
    begins IMMEDIATE and holds the write lock until commit or rollback;
    sessions that skip this stay deferred readers.
    """
    db.connection(execution_options={WRITE_INTENT: True})
    return db


@contextmanager
def session_scope(
    session_factory: Callable[[], Session] = SessionLocal,
    *,
    write: bool = False,
) -> Iterator[Session]:
    """Commit on success, roll back on any error, always close."""
    db = session_factory()
    try:
        if write:
            begin_write(db)
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
