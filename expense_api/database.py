import logging

from sqlmodel import SQLModel, create_engine, Session
from .config import settings
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import NullPool, StaticPool

logger = logging.getLogger(__name__)

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


if settings.database_url in _MEMORY_URLS:
    # A single shared connection, otherwise every checkout sees an empty database
    engine = create_engine(
        settings.database_url,
        echo=settings.sql_echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
elif settings.database_url.startswith("sqlite"):
    engine = create_engine(
        settings.database_url,
        echo=settings.sql_echo,
        connect_args={"check_same_thread": False, "timeout": 60},
        poolclass=NullPool,  # avoid multiple pooled connections holding write locks
    )
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA busy_timeout=60000;")
    except OperationalError:
        # The database may be momentarily locked during reloader startup.
        logger.warning("Could not set SQLite pragmas on %s", settings.database_url)
else:
    engine = create_engine(
        settings.database_url,
        echo=settings.sql_echo,
        pool_pre_ping=True,
    )


def get_session():
    with Session(engine) as session:
        yield session


def init_db():
    from .models import user, category, expense  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database schema ready")
