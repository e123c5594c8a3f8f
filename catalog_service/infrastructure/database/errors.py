from typing import Optional

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError

from catalog_service.core.exceptions import (
    CatalogError,
    DatabaseError,
    ForeignKeyViolationError,
    ResourceNotFoundError,
    UniqueViolationError,
)

# SQLSTATE codes (PostgreSQL)
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"


def _sqlstate(error: IntegrityError) -> Optional[str]:
    orig = error.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_store_error(error: SQLAlchemyError, context: str) -> CatalogError:
    """
    Map a store failure onto the catalog error taxonomy.

    - missing related record  -> ResourceNotFoundError (404)
    - foreign key violation   -> ForeignKeyViolationError (400)
    - unique violation        -> UniqueViolationError (409)
    - anything else           -> DatabaseError (500) with the operation context
    """
    if isinstance(error, NoResultFound):
        return ResourceNotFoundError(original_exception=error)

    if isinstance(error, IntegrityError):
        code = _sqlstate(error)
        detail = str(error.orig)
        if code == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint failed" in detail:
            return ForeignKeyViolationError(original_exception=error)
        if code == UNIQUE_VIOLATION or "UNIQUE constraint failed" in detail:
            return UniqueViolationError(original_exception=error)

    return DatabaseError(f"An error occurred while {context}", error)
