from stockledger.database.base import Base
from stockledger.database.engine import WRITE_INTENT, engine, make_engine
from stockledger.database.session import SessionLocal, begin_write, get_db, session_scope


def init_db(bind=None) -> None:
    from stockledger.models import import_all_models

    import_all_models()
    Base.metadata.create_all(bind=bind or engine)


__all__ = [
    "Base",
    "SessionLocal",
    "WRITE_INTENT",
    "begin_write",
    "engine",
    "get_db",
    "init_db",
    "make_engine",
    "session_scope",
]
