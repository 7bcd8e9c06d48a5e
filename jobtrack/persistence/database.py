"""Engine, schema setup and session scope for the tracker database."""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from jobtrack.persistence.models import Base

logger = logging.getLogger(__name__)


def engine_options(url: str) -> dict:
    """Keyword arguments for ``create_engine`` that suit the URL's backend."""
    if make_url(url).get_backend_name() == "sqlite":
        # The scheduler scans from worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


def create_session_factory(url: str) -> sessionmaker:
    """Build a session factory bound to a fresh engine for ``url``."""
    return sessionmaker(bind=create_engine(url, **engine_options(url)), autoflush=False)


SessionLocal = create_session_factory(settings.database_url)
engine: Engine = SessionLocal.kw["bind"]


def _ensure_sqlite_directory(bind: Engine) -> None:
    """SQLite creates the database file on first connect but not its directory."""
    url = bind.url
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _ensure_indexes(bind: Engine) -> None:
    """Add indexes declared after a table was first created.

    ``create_all`` skips existing tables entirely, so databases created before
    the single-user uniqueness index need it added here.
    """
    inspector = inspect(bind)
    existing_tables = set(inspector.get_table_names())

    with bind.begin() as conn:
        for table in Base.metadata.sorted_tables:
            if table.name not in existing_tables:
                continue
            present = {idx["name"] for idx in inspector.get_indexes(table.name)}
            for index in table.indexes:
                if index.name not in present:
                    index.create(bind=conn)
                    logger.info("Created index %s on %s", index.name, table.name)


def init_db(bind: Optional[Engine] = None) -> None:
    """Create missing tables and indexes on ``bind`` (the configured engine by default)."""
    bind = bind or engine
    _ensure_sqlite_directory(bind)
    Base.metadata.create_all(bind=bind)
    _ensure_indexes(bind)
    logger.debug("Database schema ready on %s", bind.url.render_as_string(hide_password=True))


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Unit of work: commit on success, roll back on error, always close."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
