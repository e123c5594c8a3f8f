from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterator, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine

from catalog_service.config.logger_config import log
from catalog_service.core.exceptions import CatalogError, DatabaseError
from catalog_service.infrastructure.database.errors import translate_store_error


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """
    Owns the SQLModel engine for one application instance.
    Created in the FastAPI lifespan (or by tests) and stored on `app.state`.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        kwargs: Dict[str, Any] = {"echo": echo}
        if url.startswith("postgresql"):
            kwargs.update(
                pool_pre_ping=True,
                pool_recycle=300,
                connect_args={"sslmode": "disable"},
            )
        kwargs.update(engine_kwargs)

        try:
            self.engine: Engine = create_engine(url, **kwargs)
        except Exception as e:
            log.critical("Failed to create database engine", error=str(e))
            raise RuntimeError("Failed to initialize database engine") from e

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

    def verify_connection(self) -> None:
        """Run a trivial query so startup fails fast on a bad DATABASE_URL."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            log.info("Database connection verified", dialect=self.engine.dialect.name)
        except Exception as e:
            log.critical("Failed to connect to database", error=str(e), exc_info=True)
            raise RuntimeError("Failed to initialize database engine") from e

    def create_tables(self) -> None:
        # Registers every table on SQLModel.metadata
        import catalog_service.domain.models  # noqa: F401

        SQLModel.metadata.create_all(self.engine)
        log.info("Database tables ensured")

    def drop_tables(self) -> None:
        SQLModel.metadata.drop_all(self.engine)

    def session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def dispose(self) -> None:
        self.engine.dispose()


def get_session(request: Request) -> Generator[Session, None, None]:
    """
    Dependency that provides a database session bound to the app's Database.
    Ensures proper cleanup after use.

    Yields:
        Session: An active SQLModel session.

    Raises:
        RuntimeError: If the database is not initialized.
    """
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        log.critical("Database session requested, but database is not initialized")
        raise RuntimeError("Database not initialized")

    session = database.session()
    try:
        yield session
    except Exception as e:
        log.error("Database session error, rolling back", error=str(e))
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction(session: Session, context: str) -> Iterator[Session]:
    """
    Atomic scope over `session`: commits on success, rolls back on any failure.

    Catalog errors raised inside the scope propagate unchanged; store errors are
    translated (see `translate_store_error`); anything else becomes a
    DatabaseError carrying `context` ("creating product", ...).
    """
    try:
        yield session
        session.commit()
    except CatalogError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        log.error("Store error while {}", context, error=str(e))
        raise translate_store_error(e, context) from e
    except Exception as e:
        session.rollback()
        log.exception("Unexpected error while {}", context)
        raise DatabaseError(f"An error occurred while {context}", e) from e
