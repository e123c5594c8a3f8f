from uuid import uuid4

import pytest
from sqlmodel import select

from catalog_service.core.exceptions import (
    ColorAlreadyExistsError,
    ColorInUseError,
    ColorNotFoundError,
)
from catalog_service.domain.models import Color, ProductVariant
from catalog_service.interfaces.http.schemas import ColorCreate, ColorUpdate
from factories import make_category, make_product


@pytest.fixture
def red(color_service):
    return color_service.create(ColorCreate(color_code="#FF0000", color_name="Red"))


def test_create_and_list_sorted_by_name(color_service, red):
    color_service.create(ColorCreate(color_code="#0000FF", color_name="Blue"))

    assert [c.color_name for c in color_service.find_all()] == ["Blue", "Red"]


@pytest.mark.parametrize(
    "code, name",
    [("#FF0000", "Crimson"), ("#AA0000", "Red")],
    ids=["same-code", "same-name"],
)
def test_create_conflicts_on_code_or_name(color_service, red, code, name):
    with pytest.raises(ColorAlreadyExistsError, match="Color already exists"):
        color_service.create(ColorCreate(color_code=code, color_name=name))


def test_update_ignores_own_values(color_service, red):
    updated = color_service.update(
        red.id, ColorUpdate(color_code="#FF0000", color_name="Scarlet")
    )

    assert updated.color_name == "Scarlet"
    assert updated.color_code == "#FF0000"


def test_update_conflict_with_another_color(color_service, red):
    blue = color_service.create(ColorCreate(color_code="#0000FF", color_name="Blue"))

    with pytest.raises(ColorAlreadyExistsError):
        color_service.update(blue.id, ColorUpdate(color_name="Red"))


def test_empty_update_is_a_no_op(color_service, red):
    assert color_service.update(red.id, ColorUpdate()).color_name == "Red"


def test_missing_color(color_service):
    with pytest.raises(ColorNotFoundError, match="Color not found"):
        color_service.find_one(uuid4())
    with pytest.raises(ColorNotFoundError):
        color_service.remove(uuid4())


def test_remove_unused_color(color_service, session, red):
    removed = color_service.remove(red.id)

    assert removed.id == red.id
    assert session.get(Color, red.id) is None


def test_color_used_by_a_variant_cannot_be_removed(color_service, session, red):
    category = make_category(session, "Lighting")
    product = make_product(session, "Desk Lamp", category.id)
    session.add(
        ProductVariant(
            sku="LAMP-RED",
            price=product.price,
            available_quantity=1,
            product_id=product.id,
            color_id=red.id,
        )
    )
    session.commit()

    with pytest.raises(ColorInUseError):
        color_service.remove(red.id)

    assert session.get(Color, red.id) is not None


def test_get_or_create_reuses_by_name(color_service, session, red):
    found = color_service.get_or_create("Red", "#123456")

    assert found.id == red.id
    assert found.color_code == "#FF0000"


def test_get_or_create_defaults_code_to_lowercased_name(color_service, session):
    created = color_service.get_or_create("Forest Green")
    session.commit()

    stored = session.exec(select(Color).where(Color.color_name == "Forest Green")).one()
    assert created.id == stored.id
    assert stored.color_code == "forest green"


def test_get_or_create_refuses_a_taken_code(color_service, session, red):
    with pytest.raises(ColorAlreadyExistsError):
        color_service.get_or_create("Crimson", "#FF0000")

    session.rollback()
    codes = session.exec(select(Color.color_code)).all()
    assert codes == ["#FF0000"]


def test_get_or_create_refuses_a_default_code_that_is_taken(color_service, session):
    color_service.create(ColorCreate(color_code="navy", color_name="Dark Blue"))

    with pytest.raises(ColorAlreadyExistsError):
        color_service.get_or_create("Navy")
