from uuid import uuid4

import pytest

from catalog_service.application.category_hierarchy import CategoryHierarchyValidator
from catalog_service.core.exceptions import (
    CategoryAlreadyExistsError,
    CategoryHasChildrenError,
    CircularReferenceError,
    InvalidInputError,
    MaxDepthExceededError,
    NotFoundError,
    ParentAlreadyNestedError,
    ParentCategoryNotFoundError,
    SelfParentError,
)
from catalog_service.domain.models import Category
from factories import make_category


@pytest.fixture
def validator(session):
    return CategoryHierarchyValidator(session)


def build_chain(session, length):
    """Categories c0 <- c1 <- ... inserted directly, bypassing the two-level rule."""
    chain = [make_category(session, "c0")]
    for index in range(1, length):
        chain.append(make_category(session, f"c{index}", parent_id=chain[-1].id))
    return chain


def test_root_category_can_be_a_parent(session, validator):
    root = make_category(session, "Electronics")

    parent = validator.validate_parent(root.id)

    assert parent.id == root.id


def test_subcategory_cannot_be_a_parent(session, validator):
    root = make_category(session, "Electronics")
    child = make_category(session, "Phones", parent_id=root.id)

    with pytest.raises(ParentAlreadyNestedError) as exc_info:
        validator.validate_parent(child.id)

    assert isinstance(exc_info.value, InvalidInputError)
    assert "only two levels" in exc_info.value.message


def test_category_cannot_be_its_own_parent(session, validator):
    root = make_category(session, "Electronics")

    with pytest.raises(SelfParentError) as exc_info:
        validator.validate_parent(root.id, root.id)

    assert exc_info.value.message == "A category cannot be its own parent"


def test_missing_parent_is_not_found(validator):
    with pytest.raises(ParentCategoryNotFoundError) as exc_info:
        validator.validate_parent(uuid4())

    assert isinstance(exc_info.value, NotFoundError)
    assert exc_info.value.message == "Parent category not found"


def test_category_with_children_cannot_be_nested(session, validator):
    root = make_category(session, "Electronics")
    make_category(session, "Phones", parent_id=root.id)
    other_root = make_category(session, "Home")

    with pytest.raises(CategoryHasChildrenError):
        validator.validate_parent(other_root.id, root.id)


def test_cycle_detected_through_ten_levels(session, validator):
    chain = build_chain(session, 10)

    with pytest.raises(CircularReferenceError) as exc_info:
        validator.validate_parent(chain[-1].id, chain[0].id)

    assert exc_info.value.message == "Circular reference detected in category hierarchy"


def test_existing_cycle_in_store_is_detected(session, validator):
    first = make_category(session, "First")
    second = make_category(session, "Second")
    first.parent_id = second.id
    second.parent_id = first.id
    session.add_all([first, second])
    session.commit()

    with pytest.raises(CircularReferenceError):
        validator.validate_parent(first.id)


def test_walk_longer_than_ceiling_is_rejected(session, validator):
    chain = build_chain(session, 52)

    with pytest.raises(MaxDepthExceededError) as exc_info:
        validator.validate_parent(chain[-1].id)

    assert exc_info.value.message == "Maximum category depth exceeded"


def test_uniqueness_reports_the_clashing_field(session, validator):
    make_category(session, "Electronics", slug="electronics")

    with pytest.raises(CategoryAlreadyExistsError) as name_error:
        validator.validate_uniqueness("Electronics", "other-slug")
    with pytest.raises(CategoryAlreadyExistsError) as slug_error:
        validator.validate_uniqueness("Other", "electronics")

    assert name_error.value.message == "A category with this name already exists"
    assert slug_error.value.message == "A category with this slug already exists"


def test_uniqueness_ignores_the_record_being_updated(session, validator):
    category = make_category(session, "Electronics", slug="electronics")

    validator.validate_uniqueness("Electronics", "electronics", exclude_id=category.id)


def test_uniqueness_without_values_is_a_no_op(validator):
    validator.validate_uniqueness(None, None)


def test_validation_does_not_write(session, validator):
    root = make_category(session, "Electronics")
    make_category(session, "Phones", parent_id=root.id)

    with pytest.raises(ParentAlreadyNestedError):
        validator.validate_parent(root.children[0].id)

    assert session.get(Category, root.id).parent_id is None
    assert not session.dirty and not session.new
