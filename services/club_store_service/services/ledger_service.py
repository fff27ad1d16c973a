"""Fulfillment ledger: the per-product "ordered" counter shown to staff.

``ordered_not_picked_up_count`` is cumulative. It goes up whenever
entitlements are issued and is *not* decremented on pickup, so over time it
reads as "ever ordered". ``get_ledger`` reports the live outstanding figure
next to it rather than changing the counter's meaning.
"""

import uuid
from dataclasses import dataclass

from libs.common.logging import get_logger
from services.club_store_service.models import Entitlement, EntitlementStatus, Product
from services.club_store_service.services.catalog_service import get_product
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

OUTSTANDING_STATUSES = (EntitlementStatus.NOT_READY, EntitlementStatus.READY_FOR_PICKUP)


@dataclass(frozen=True, slots=True)
class LedgerView:
    product_id: uuid.UUID
    product_name: str
    inventory_quantity: int
    ordered_not_picked_up_count: int
    outstanding_quantity: int
    picked_up_quantity: int


async def increment_ordered(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> None:
    """Atomically add ``quantity`` to the product's ordered counter.

    Pure increment in SQL, so concurrent callers never lose an update. Does
    not commit.
    """
    if quantity <= 0:
        return
    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            ordered_not_picked_up_count=Product.ordered_not_picked_up_count + quantity
        )
        .execution_options(synchronize_session=False)
    )
    logger.debug("Ledger +%d for product %s", quantity, product_id)


async def get_ledger(db: AsyncSession, product_id: uuid.UUID) -> LedgerView:
    product = await get_product(db, product_id)

    result = await db.execute(
        select(Entitlement.status, func.coalesce(func.sum(Entitlement.quantity), 0))
        .where(Entitlement.product_id == product_id)
        .group_by(Entitlement.status)
    )
    totals = {status: int(total) for status, total in result.all()}

    # Fresh counters; the instance may predate a concurrent update.
    counters = await db.execute(
        select(Product.inventory_quantity, Product.ordered_not_picked_up_count).where(
            Product.id == product_id
        )
    )
    inventory_quantity, ordered_count = counters.one()

    return LedgerView(
        product_id=product.id,
        product_name=product.name,
        inventory_quantity=inventory_quantity,
        ordered_not_picked_up_count=ordered_count,
        outstanding_quantity=sum(totals.get(s, 0) for s in OUTSTANDING_STATUSES),
        picked_up_quantity=totals.get(EntitlementStatus.PICKED_UP, 0),
    )
