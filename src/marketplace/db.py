import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import BigInteger, Integer, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.core.config import DatabaseConfig
from marketplace.core.exceptions import BaseAPIException, DatabaseError

logger = logging.getLogger(__name__)

# SQLite only auto-increments INTEGER PRIMARY KEY columns.
BigIntPK = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    pass


SessionLocal = sessionmaker(autoflush=True, expire_on_commit=False)

_engine: Optional[Engine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # ON DELETE CASCADE / SET NULL are ignored by SQLite unless switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(db_config: DatabaseConfig) -> Engine:
    """Create the engine for ``db_config`` and bind the session factory to it."""
    global _engine

    if db_config.url.startswith("sqlite"):
        kwargs = {"echo": db_config.echo, "connect_args": {"check_same_thread": False}}
        if ":memory:" in db_config.url or db_config.url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            # one shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs = {
            "echo": db_config.echo,
            "pool_size": db_config.pool_size,
            "max_overflow": db_config.max_overflow,
            "pool_timeout": db_config.pool_timeout,
            "pool_recycle": db_config.pool_recycle,
            "pool_pre_ping": True,
        }

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(db_config.url, **kwargs)
    if db_config.url.startswith("sqlite"):
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Database engine is not initialised; call init_engine() first")
    return _engine


def create_all() -> None:
    # Registers every table with Base.metadata
    import marketplace.models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def drop_all() -> None:
    import marketplace.models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Unit of work: yields a session, commits on success, rolls back on any error.

    Everything done inside one ``with get_session()`` block is a single
    transaction, so a failure halfway through leaves no partial writes.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except BaseAPIException:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database error, transaction rolled back: {e}")
        raise DatabaseError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping() -> bool:
    with get_engine().connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
