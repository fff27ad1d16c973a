"""Unit tests for club store pricing and tax.

Pure helpers are tested on in-memory models; cart totals load products
through the db_session fixture.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from services.club_store_service.errors import (
    BelowMinimumCharge,
    CartNotFound,
    InvalidQuantity,
    PreorderWindowClosed,
    UnknownClub,
    UnknownMembershipOffering,
)
from services.club_store_service.models import (
    PaymentMethod,
    Product,
    ProductClubPrice,
)
from services.club_store_service.services import cart_service
from services.club_store_service.services.checkout_service import quote_checkout
from services.club_store_service.services.pricing_service import (
    CartComputation,
    CartLine,
    compute_cart_total,
    compute_final_total,
    enforce_preorder_windows,
    is_within_preorder_window,
    recommend_payment_method,
    resolve_unit_price,
)
from tests.factories import (
    MembershipOfferingFactory,
    ProductClubPriceFactory,
    ProductFactory,
    TaxRateFactory,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _product_with_overrides(base=3400, **overrides) -> Product:
    return Product(
        name="Barrel-Aged Stout",
        base_price_cents=base,
        club_prices=[
            ProductClubPrice(club_code=code, price_cents=cents)
            for code, cents in overrides.items()
        ],
    )


# ---------------------------------------------------------------------------
# resolve_unit_price
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_club_override_beats_base_price():
    product = _product_with_overrides(WOOD=3000)
    assert resolve_unit_price(product, ["WOOD", "SAP"]) == 3000


@pytest.mark.unit
def test_base_price_when_no_membership_matches():
    product = _product_with_overrides(WOOD=3000)
    assert resolve_unit_price(product, ["SAP"]) == 3400
    assert resolve_unit_price(product, []) == 3400


@pytest.mark.unit
def test_lowest_override_wins_regardless_of_order():
    product = _product_with_overrides(WOOD=3000, FOUNDERS=2800)
    assert resolve_unit_price(product, ["WOOD", "FOUNDERS"]) == 2800
    assert resolve_unit_price(product, ["FOUNDERS", "WOOD"]) == 2800


@pytest.mark.unit
def test_override_lookup_ignores_case():
    product = _product_with_overrides(WOOD=3000)
    assert resolve_unit_price(product, ["wood"]) == 3000


# ---------------------------------------------------------------------------
# Preorder windows
# ---------------------------------------------------------------------------


def _march_preorder() -> Product:
    return Product(
        id=uuid.uuid4(),
        name="March Release",
        base_price_cents=3400,
        is_preorder=True,
        preorder_start_at=_utc(2026, 3, 1),
        preorder_end_at=_utc(2026, 3, 31),
    )


@pytest.mark.unit
def test_preorder_closed_after_window():
    with pytest.raises(PreorderWindowClosed) as exc_info:
        enforce_preorder_windows([_march_preorder()], now=_utc(2026, 4, 1))
    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["error"] == "preorder_window_closed"


@pytest.mark.unit
def test_preorder_window_bounds_are_inclusive():
    product = _march_preorder()
    assert is_within_preorder_window(product, _utc(2026, 3, 1))
    assert is_within_preorder_window(product, _utc(2026, 3, 31))
    assert not is_within_preorder_window(product, _utc(2026, 2, 28, 23, 59))


@pytest.mark.unit
def test_preorder_without_bounds_is_closed():
    product = _march_preorder()
    product.preorder_end_at = None
    with pytest.raises(PreorderWindowClosed):
        enforce_preorder_windows([product], now=_utc(2026, 3, 15))


@pytest.mark.unit
def test_regular_products_skip_window_check():
    product = Product(name="Glassware", base_price_cents=1200, is_preorder=False)
    enforce_preorder_windows([product], now=_utc(2026, 4, 1))


# ---------------------------------------------------------------------------
# Final total & payment method
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_thirty_cent_cart_is_below_minimum():
    cart = CartComputation(subtotal_cents=30, total_cents=30)
    with pytest.raises(BelowMinimumCharge) as exc_info:
        compute_final_total(cart)
    assert exc_info.value.detail["total_cents"] == 30
    assert exc_info.value.detail["minimum_cents"] == 50


@pytest.mark.unit
def test_membership_and_tip_are_added_untaxed():
    cart = CartComputation(subtotal_cents=6000, tax_cents=495)
    compute_final_total(cart, membership_cents=15000, tip_cents=500)
    assert cart.total_cents == 6000 + 495 + 15000 + 500
    assert cart.tax_cents == 495


@pytest.mark.unit
def test_tip_alone_can_meet_minimum():
    cart = CartComputation()
    compute_final_total(cart, tip_cents=50)
    assert cart.total_cents == 50


@pytest.mark.unit
def test_payment_method_recommendation():
    assert recommend_payment_method(100_000, 0) == PaymentMethod.CARD
    assert recommend_payment_method(49_999, 50_000) == PaymentMethod.CARD
    assert recommend_payment_method(50_000, 50_000) == PaymentMethod.US_BANK_ACCOUNT


# ---------------------------------------------------------------------------
# compute_cart_total
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cart_total_with_club_price_and_tax(db_session, standard_rate):
    product = ProductFactory.create(tax_rate_id=standard_rate.id)
    db_session.add(product)
    db_session.add(ProductClubPriceFactory.create(product, "WOOD", 3000))
    await db_session.commit()

    cart = await compute_cart_total(
        db_session, [CartLine(product.id, 2)], ["WOOD", "SAP"]
    )

    assert cart.subtotal_cents == 6000
    assert cart.tax_cents == 495
    assert cart.total_cents == 6495
    assert cart.tax_breakdown == {str(standard_rate.id): 495}
    assert cart.lines[0].unit_price_cents == 3000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_tax_rounds_half_up(db_session, standard_rate):
    # 8.25% of 1000 is 82.5
    product = ProductFactory.create(base_price_cents=1000, tax_rate_id=standard_rate.id)
    db_session.add(product)
    await db_session.commit()

    cart = await compute_cart_total(db_session, [CartLine(product.id, 1)], [])

    assert cart.tax_cents == 83


@pytest.mark.asyncio
@pytest.mark.unit
async def test_tax_breakdown_groups_lines_by_rate(db_session, standard_rate):
    reduced = TaxRateFactory.create(name="Reduced", rate_percent=Decimal("5"))
    a = ProductFactory.create(base_price_cents=2000, tax_rate_id=standard_rate.id)
    b = ProductFactory.create(base_price_cents=2000, tax_rate_id=standard_rate.id)
    c = ProductFactory.create(base_price_cents=1000, tax_rate_id=reduced.id)
    untaxed = ProductFactory.create(base_price_cents=500)
    db_session.add_all([reduced, a, b, c, untaxed])
    await db_session.commit()

    cart = await compute_cart_total(
        db_session,
        [CartLine(a.id, 1), CartLine(b.id, 1), CartLine(c.id, 1), CartLine(untaxed.id, 1)],
        [],
    )

    assert cart.tax_breakdown == {str(standard_rate.id): 330, str(reduced.id): 50}
    assert cart.tax_cents == 380
    assert cart.subtotal_cents == 5500


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stale_cart_lines_are_skipped(db_session):
    product = ProductFactory.create(base_price_cents=1500)
    db_session.add(product)
    await db_session.commit()

    cart = await compute_cart_total(
        db_session,
        [CartLine(product.id, 1), CartLine(product.id, 0), CartLine(uuid.uuid4(), 3)],
        [],
    )

    assert len(cart.lines) == 1
    assert cart.subtotal_cents == 1500


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deleted_tax_rate_contributes_no_tax(db_session):
    product = ProductFactory.create(base_price_cents=1000, tax_rate_id=uuid.uuid4())
    db_session.add(product)
    await db_session.commit()

    cart = await compute_cart_total(db_session, [CartLine(product.id, 1)], [])

    assert cart.tax_cents == 0
    assert cart.tax_breakdown == {}


# ---------------------------------------------------------------------------
# quote_checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_uses_member_clubs_when_none_given(db_session, wood_club):
    product = ProductFactory.create()
    db_session.add(product)
    db_session.add(ProductClubPriceFactory.create(product, "WOOD", 3000))
    await db_session.commit()

    quote = await quote_checkout(
        db_session,
        items=[CartLine(product.id, 1)],
        member_id=wood_club.members[0].id,
    )

    assert quote.club_codes == ["WOOD"]
    assert quote.cart.total_cents == 3000
    assert quote.currency == "USD"
    assert quote.default_payment_method == PaymentMethod.CARD
    assert quote.payment_metadata["member_id"] == str(wood_club.members[0].id)
    assert quote.payment_metadata["subtotal_cents"] == "3000"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_rejects_unknown_club_code(db_session, wood_club):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    with pytest.raises(UnknownClub) as exc_info:
        await quote_checkout(
            db_session, items=[CartLine(product.id, 1)], club_codes=["NOPE"]
        )
    assert exc_info.value.detail["valid_codes"] == ["WOOD"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_rejects_negative_tip(db_session):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    with pytest.raises(InvalidQuantity):
        await quote_checkout(db_session, items=[CartLine(product.id, 1)], tip_cents=-1)


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize("tip", [float("nan"), float("inf"), float("-inf")])
async def test_quote_rejects_non_finite_tip(db_session, tip):
    product = ProductFactory.create()
    db_session.add(product)
    await db_session.commit()

    with pytest.raises(InvalidQuantity) as exc_info:
        await quote_checkout(db_session, items=[CartLine(product.id, 1)], tip_cents=tip)
    assert exc_info.value.detail["tip_cents"] == str(tip)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_floors_tip_and_adds_membership(db_session):
    product = ProductFactory.create(base_price_cents=1000)
    offering = MembershipOfferingFactory.create(price_cents=15000)
    db_session.add_all([product, offering])
    await db_session.commit()

    quote = await quote_checkout(
        db_session,
        items=[CartLine(product.id, 1)],
        membership_offering_id=offering.id,
        tip_cents=250.9,
    )

    assert quote.cart.tip_cents == 250
    assert quote.cart.membership_cents == 15000
    assert quote.cart.total_cents == 1000 + 15000 + 250


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_rejects_inactive_membership_offering(db_session):
    product = ProductFactory.create()
    offering = MembershipOfferingFactory.create(is_active=False)
    db_session.add_all([product, offering])
    await db_session.commit()

    with pytest.raises(UnknownMembershipOffering):
        await quote_checkout(
            db_session,
            items=[CartLine(product.id, 1)],
            membership_offering_id=offering.id,
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_rejects_closed_preorder(db_session):
    product = ProductFactory.create(
        is_preorder=True,
        preorder_start_at=_utc(2026, 3, 1),
        preorder_end_at=_utc(2026, 3, 31),
        release_at=_utc(2026, 5, 1),
    )
    db_session.add(product)
    await db_session.commit()

    with pytest.raises(PreorderWindowClosed):
        await quote_checkout(
            db_session, items=[CartLine(product.id, 1)], now=_utc(2026, 4, 1)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_prices_cart_session_when_no_items_given(db_session):
    product = ProductFactory.create(base_price_cents=1200)
    db_session.add(product)
    await db_session.commit()
    cart = await cart_service.set_item(db_session, "cart_quote", product.id, 3)

    quote = await quote_checkout(db_session, items=[], cart_session_id=cart.session_id)

    assert [(line.product_id, line.quantity) for line in quote.cart.lines] == [
        (product.id, 3)
    ]
    assert quote.cart.subtotal_cents == 3600


@pytest.mark.asyncio
@pytest.mark.unit
async def test_quote_for_unknown_cart_session(db_session):
    with pytest.raises(CartNotFound):
        await quote_checkout(db_session, items=[], cart_session_id="cart_missing")
