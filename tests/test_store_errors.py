import pytest
from sqlalchemy.exc import IntegrityError, NoResultFound, OperationalError
from sqlmodel import select

from catalog_service.core.exceptions import (
    CategoryNotFoundError,
    DatabaseError,
    ForeignKeyViolationError,
    NotFoundError,
    ResourceNotFoundError,
    UniqueViolationError,
)
from catalog_service.domain.models import Category
from catalog_service.infrastructure.database.errors import translate_store_error
from catalog_service.infrastructure.database.session import transaction
from factories import make_category


class PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


def integrity_error(orig):
    return IntegrityError("INSERT ...", {}, orig)


def test_no_result_is_not_found():
    error = translate_store_error(NoResultFound(), "loading category")

    assert isinstance(error, ResourceNotFoundError)
    assert isinstance(error, NotFoundError)


@pytest.mark.parametrize(
    "orig",
    [PgError("23503"), Exception("FOREIGN KEY constraint failed")],
)
def test_foreign_key_violation(orig):
    error = translate_store_error(integrity_error(orig), "deleting category")

    assert isinstance(error, ForeignKeyViolationError)
    assert error.message == "Foreign key constraint failed"


@pytest.mark.parametrize(
    "orig",
    [PgError("23505"), Exception("UNIQUE constraint failed: categories.name")],
)
def test_unique_violation(orig):
    error = translate_store_error(integrity_error(orig), "creating category")

    assert isinstance(error, UniqueViolationError)
    assert error.message == "Resource already exists"


def test_other_errors_carry_the_context():
    error = translate_store_error(
        OperationalError("SELECT 1", {}, Exception("disk I/O error")), "creating product"
    )

    assert isinstance(error, DatabaseError)
    assert error.message == "An error occurred while creating product"


class TestTransaction:
    def test_commits_on_success(self, session):
        category = Category(name="Electronics", slug="electronics")

        with transaction(session, "creating category"):
            session.add(category)

        session.expire_all()
        assert session.get(Category, category.id).name == "Electronics"

    def test_catalog_errors_propagate_unchanged(self, session):
        with pytest.raises(CategoryNotFoundError):
            with transaction(session, "updating category"):
                session.add(Category(name="Electronics", slug="electronics"))
                raise CategoryNotFoundError()

        assert session.exec(select(Category)).all() == []

    def test_store_errors_are_translated_and_rolled_back(self, session):
        make_category(session, "Electronics", slug="electronics")

        with pytest.raises(UniqueViolationError):
            with transaction(session, "creating category"):
                session.add(Category(name="Electronics", slug="other"))

        # session is usable again after the rollback
        make_category(session, "Garden")

    def test_unexpected_errors_become_database_errors(self, session):
        with pytest.raises(DatabaseError, match="An error occurred while importing"):
            with transaction(session, "importing"):
                raise ValueError("boom")
