"""Concurrent callers against the same rows.

Each task uses its own session from session_factory, the way two requests
would. The shared rows must end up consistent no matter how they interleave.
"""

import asyncio

import pytest
from services.club_store_service.errors import InsufficientInventory, InvalidTransition
from services.club_store_service.models import (
    TIP_POOL_ID,
    Entitlement,
    EntitlementStatus,
    Product,
    TipPool,
)
from services.club_store_service.services.allocation_service import create_allocation
from services.club_store_service.services.checkout_service import on_payment_succeeded
from services.club_store_service.services.entitlement_service import mark_picked_up
from services.club_store_service.services.pricing_service import CartLine
from services.club_store_service.services.tip_service import credit_tips, get_tip_pool
from sqlalchemy import func, select
from tests.factories import EntitlementFactory, MemberFactory, ProductFactory


async def _allocate(session_factory, product_id):
    async with session_factory() as db:
        return await create_allocation(
            db,
            product_id=product_id,
            quantity_per_person=1,
            target_type="club",
            club_code="WOOD",
            pull_from_inventory=True,
        )


async def _pick_up(session_factory, entitlement_id):
    async with session_factory() as db:
        return await mark_picked_up(db, entitlement_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_one_allocation_wins_scarce_stock(db_session, session_factory, wood_club):
    # Enough stock for one grant of 3, not two.
    product = ProductFactory.create(inventory_quantity=4)
    db_session.add(product)
    await db_session.commit()

    results = await asyncio.gather(
        _allocate(session_factory, product.id),
        _allocate(session_factory, product.id),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientInventory)
    assert failures[0].available == 1

    counters = await db_session.execute(
        select(Product.inventory_quantity, Product.ordered_not_picked_up_count).where(
            Product.id == product.id
        )
    )
    assert tuple(counters.one()) == (1, 3)
    count = await db_session.execute(
        select(func.count(Entitlement.id)).where(Entitlement.product_id == product.id)
    )
    assert count.scalar_one() == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_double_scan_fulfils_once(db_session, session_factory):
    member = MemberFactory.create()
    product = ProductFactory.create()
    entitlement = EntitlementFactory.create(member, product)
    db_session.add_all([member, product, entitlement])
    await db_session.commit()

    results = await asyncio.gather(
        _pick_up(session_factory, entitlement.id),
        _pick_up(session_factory, entitlement.id),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, Entitlement)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert successes[0].status == EntitlementStatus.PICKED_UP
    assert len(failures) == 1
    assert isinstance(failures[0], InvalidTransition)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_purchases_never_lose_ledger_updates(db_session, session_factory):
    members = [MemberFactory.create() for _ in range(5)]
    product = ProductFactory.create()
    db_session.add_all([*members, product])
    await db_session.commit()

    async def _buy(member):
        async with session_factory() as db:
            return await on_payment_succeeded(
                db,
                member_id=member.id,
                items=[CartLine(product.id, 2)],
                payment_reference=f"pi_{member.id.hex[:10]}",
                tip_cents=100,
            )

    await asyncio.gather(*(_buy(member) for member in members))

    ordered = await db_session.execute(
        select(Product.ordered_not_picked_up_count).where(Product.id == product.id)
    )
    assert ordered.scalar_one() == 10


@pytest.mark.asyncio
@pytest.mark.unit
async def test_concurrent_first_tips_create_the_pool_once(db_session, session_factory):
    # create_all leaves the pool row out, so every credit races to create it.
    assert (await get_tip_pool(db_session)).available_cents == 0
    await db_session.commit()

    async def _tip(amount):
        async with session_factory() as db:
            await credit_tips(db, amount)
            await db.commit()

    await asyncio.gather(*(_tip(amount) for amount in (100, 250, 75)))

    rows = await db_session.execute(select(TipPool.id, TipPool.available_cents))
    assert [tuple(row) for row in rows.all()] == [(TIP_POOL_ID, 425)]
