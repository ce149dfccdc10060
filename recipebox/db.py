import logging
import time
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError as SAIntegrityError
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings
from .errors import ConflictError, StoreUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(url: str | None = None, timeout: float | None = None, **kwargs):
    """Build an engine for ``url`` (defaults to the configured database).

    SQLite connections get pysqlite's implicit transaction handling turned
    off and an explicit BEGIN per transaction, otherwise SAVEPOINTs used by
    ingredient get-or-create would not nest inside the outer transaction.
    ``timeout`` (default ``db_timeout``) is how long a statement waits on a
    locked database, or on connecting for server databases.
    """
    settings = get_settings()
    url = url or settings.database_url
    timeout = settings.db_timeout if timeout is None else timeout
    connect_args = kwargs.pop("connect_args", {})

    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", timeout)
        engine = create_engine(url, connect_args=connect_args, **kwargs)

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_transactions(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        @event.listens_for(engine, "reset")
        def _restore_busy_timeout(dbapi_connection, connection_record, reset_state):
            # undo a per-transaction timeout before the connection is reused
            dbapi_connection.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)}")

        return engine

    if url.startswith(("postgresql", "mysql")):
        # psycopg2 and pymysql both take whole seconds
        connect_args.setdefault("connect_timeout", max(1, int(timeout)))
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, **kwargs)


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    # Import models so they register on Base.metadata before create_all
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def _bound_transaction(db: Session, timeout: float):
    millis = max(1, int(timeout * 1000))
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        db.execute(text(f"PRAGMA busy_timeout = {millis}"))
    elif dialect == "postgresql":
        db.execute(text(f"SET LOCAL statement_timeout = {millis}"))
    else:
        logger.debug("No per-transaction lock timeout for %s", dialect)


@contextmanager
def transaction(db: Session, commit: bool = True, timeout: float | None = None):
    """Run the enclosed statements as one unit: commit on success, roll back
    everything on the first error. With ``commit=False`` the work is rolled
    back even on success (dry runs).

    ``timeout`` bounds the whole unit in seconds. Statements waiting on a
    lock give up once it passes, and a block that finishes late is rolled
    back instead of committed. Both surface as StoreUnavailable.

    Store exceptions are translated into the recipebox error taxonomy;
    recipebox errors raised inside the block propagate unchanged.
    """
    started = time.monotonic()
    try:
        if timeout is not None:
            _bound_transaction(db, timeout)
        yield db
        if timeout is not None and time.monotonic() - started > timeout:
            raise StoreUnavailable(f"Transaction exceeded its {timeout}s timeout")
        if commit:
            db.commit()
        else:
            db.rollback()
    except SAIntegrityError as exc:
        db.rollback()
        logger.warning("Transaction rolled back on constraint violation: %s", exc.orig)
        raise ConflictError(str(exc.orig)) from exc
    except (OperationalError, InterfaceError) as exc:
        db.rollback()
        logger.warning("Transaction rolled back, store unavailable: %s", exc.orig)
        raise StoreUnavailable(str(exc.orig)) from exc
    except Exception:
        db.rollback()
        logger.warning("Transaction rolled back")
        raise
