import logging
import time
from collections.abc import Generator
from contextlib import contextmanager

from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine.base import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all models."""

    __abstract__ = True  # Prevents this class from being created as a table


class DatabaseSettings(BaseSettings):
    """Settings for database connection, loaded from environment variables."""

    db: str = "picshelf"
    user: str = "picshelf"
    password: str = "picshelf"
    host: str = "localhost"
    port: int = 5432
    # Full SQLAlchemy URL, takes precedence over the individual parts
    url: str | None = None

    @property
    def database_url(self) -> str:
        if self.url:
            return self.url
        return f"postgresql+psycopg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="POSTGRES_", extra="ignore")


def _create_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            # One shared connection, otherwise every checkout sees an empty database
            return create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, echo=echo, connect_args=connect_args)

    pool_config = {
        "pool_size": 10,
        "max_overflow": 10,
        "pool_timeout": 20,
        "pool_recycle": 1800,  # Recycle connections every 30 minutes
        "pool_pre_ping": True,  # Verify connection health before using
    }
    return create_engine(database_url, echo=echo, **pool_config)


class Database:
    """Engine and session factory owned by one application instance.

    The application creates it at startup and disposes it at shutdown; tests
    construct their own against SQLite.
    """

    def __init__(self, database_url: str | None = None, *, echo: bool = False):
        self.url = database_url or DatabaseSettings().database_url
        self.engine = _create_engine(self.url, echo=echo)
        self.session_maker = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)

    def create_all(self) -> None:
        """Create missing tables (the equivalent of CREATE TABLE IF NOT EXISTS)."""
        import picshelf.models.image  # noqa: F401  registers the table on Base.metadata

        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session]:
        session = self.session_maker()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session]:
    """Dependency injection for database sessions bound to the app's Database."""
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized. Make sure the application lifespan is properly configured.")

    session = database.session_maker()
    session_start = time.time()

    try:
        yield session
    except Exception as e:
        logger.warning("Session error after %.3fs: %s", time.time() - session_start, e)
        session.rollback()
        raise
    finally:
        duration = time.time() - session_start
        if duration > 1.0:  # Log sessions longer than 1 second
            logger.warning("Long-lived session: %.3fs", duration)
        session.close()
