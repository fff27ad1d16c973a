"""Unit tests for server-side carts."""

import uuid

import pytest
from services.club_store_service.errors import (
    CartNotFound,
    InvalidCartSession,
    ProductNotFound,
)
from services.club_store_service.services import cart_service
from services.club_store_service.services.pricing_service import CartLine
from tests.factories import ProductFactory


async def _product(db, **overrides):
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


def _lines(cart) -> list[tuple]:
    return [(item.product_id, item.quantity) for item in cart.items]


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        (5, 5),
        (2.9, 2),
        (150, 99),
        (-3, 0),
        ("7", 7),
        ("abc", 0),
        (None, 0),
        (float("nan"), 0),
        (float("inf"), 0),
    ],
)
def test_clamp_quantity(raw, expected):
    assert cart_service.clamp_quantity(raw) == expected


@pytest.mark.asyncio
@pytest.mark.unit
async def test_open_cart_without_session_generates_one(db_session):
    cart = await cart_service.open_cart(db_session)

    assert cart.session_id.startswith("cart_")
    assert cart.items == []
    again = await cart_service.open_cart(db_session, f"  {cart.session_id} ")
    assert again.id == cart.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_item_adds_then_replaces_quantity(db_session):
    product = await _product(db_session)

    await cart_service.set_item(db_session, "cart_a", product.id, 2)
    cart = await cart_service.set_item(db_session, "cart_a", product.id, 5)

    assert _lines(cart) == [(product.id, 5)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_item_clamps_to_limit(db_session):
    product = await _product(db_session)

    cart = await cart_service.set_item(db_session, "cart_a", product.id, 1000)

    assert _lines(cart) == [(product.id, 99)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_zero_quantity_removes_line(db_session):
    stout = await _product(db_session)
    saison = await _product(db_session)
    await cart_service.set_item(db_session, "cart_a", stout.id, 2)
    await cart_service.set_item(db_session, "cart_a", saison.id, 1)

    cart = await cart_service.set_item(db_session, "cart_a", stout.id, 0)

    assert _lines(cart) == [(saison.id, 1)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_remove_item_and_clear(db_session):
    stout = await _product(db_session)
    saison = await _product(db_session)
    await cart_service.set_item(db_session, "cart_a", stout.id, 2)
    await cart_service.set_item(db_session, "cart_a", saison.id, 3)

    cart = await cart_service.remove_item(db_session, "cart_a", stout.id)
    assert _lines(cart) == [(saison.id, 3)]

    cart = await cart_service.clear_cart(db_session, "cart_a")
    assert cart.items == []
    assert cart.session_id == "cart_a"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_product_is_not_added(db_session):
    with pytest.raises(ProductNotFound):
        await cart_service.set_item(db_session, "cart_a", uuid.uuid4(), 1)

    cart = await cart_service.get_cart(db_session, "cart_a")
    assert cart.items == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_another_users_cart_reads_as_missing(db_session):
    await cart_service.open_cart(db_session, "cart_pat", owner_user_id="pat")

    with pytest.raises(CartNotFound):
        await cart_service.open_cart(db_session, "cart_pat", owner_user_id="sam")
    with pytest.raises(CartNotFound):
        await cart_service.cart_lines(db_session, "cart_pat", owner_user_id="sam")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_over_long_session_id_rejected(db_session):
    with pytest.raises(InvalidCartSession):
        await cart_service.open_cart(db_session, "x" * 65)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cart_lines_feed_checkout(db_session):
    product = await _product(db_session)
    await cart_service.set_item(db_session, "cart_a", product.id, 4)

    lines = await cart_service.cart_lines(db_session, "cart_a")

    assert lines == [CartLine(product_id=product.id, quantity=4)]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cart_lines_for_missing_cart(db_session):
    with pytest.raises(CartNotFound):
        await cart_service.cart_lines(db_session, "cart_nobody")
