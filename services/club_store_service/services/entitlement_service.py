"""Entitlement store and pickup state machine.

Every transition is a single conditional UPDATE keyed on the expected current
status (compare-and-swap), so two staff devices scanning the same member can
never both fulfil the same entitlement.

    not_ready ──promote──> ready_for_pickup ──pickup──> picked_up
                                  ^                          │
                                  └────────undo pickup───────┘
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.club_store_service.errors import (
    EntitlementNotFound,
    InvalidTransition,
    MemberNotFound,
    StorageFailure,
)
from services.club_store_service.models import (
    Entitlement,
    EntitlementSource,
    EntitlementStatus,
    Member,
    Product,
)
from services.club_store_service.services.catalog_service import get_member
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PICKUP_VISIBLE_STATUSES = (EntitlementStatus.READY_FOR_PICKUP, EntitlementStatus.PICKED_UP)


@dataclass(frozen=True, slots=True)
class NewEntitlement:
    member_id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    status: EntitlementStatus
    source: EntitlementSource
    release_at: Optional[datetime] = None
    allocation_id: Optional[uuid.UUID] = None


@dataclass(slots=True)
class MemberEntitlements:
    member_id: uuid.UUID
    ready_for_pickup: list[Entitlement] = field(default_factory=list)
    upcoming: list[Entitlement] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PickupRow:
    """Entitlement joined with display names for staff pickup views."""

    id: uuid.UUID
    member_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    status: EntitlementStatus
    source: EntitlementSource
    release_at: Optional[datetime]
    picked_up_at: Optional[datetime]
    member_name: Optional[str]
    member_email: Optional[str]


def initial_state_for(product: Product) -> tuple[EntitlementStatus, Optional[datetime]]:
    """Entry state for a new entitlement on ``product``.

    Preorder products with a release date start not_ready until that date;
    everything else is collectible immediately.
    """
    if product.is_preorder and product.release_at is not None:
        return EntitlementStatus.NOT_READY, ensure_utc(product.release_at)
    return EntitlementStatus.READY_FOR_PICKUP, None


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def create_entitlements(
    db: AsyncSession, entries: Sequence[NewEntitlement]
) -> list[Entitlement]:
    """Insert a batch of entitlements. Flushes; the caller commits."""
    rows = [
        Entitlement(
            member_id=entry.member_id,
            product_id=entry.product_id,
            allocation_id=entry.allocation_id,
            quantity=entry.quantity,
            status=entry.status,
            source=entry.source,
            release_at=entry.release_at,
            picked_up_at=None,
        )
        for entry in entries
    ]
    db.add_all(rows)
    await db.flush()
    return rows


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def promote_preorders(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Move every due not_ready entitlement to ready_for_pickup.

    One bulk conditional UPDATE, so running it twice (or concurrently) never
    double-applies. Returns the number of rows promoted and commits.
    """
    now = ensure_utc(now) or utc_now()
    try:
        result = await db.execute(
            update(Entitlement)
            .where(
                Entitlement.status == EntitlementStatus.NOT_READY,
                Entitlement.release_at.is_not(None),
                Entitlement.release_at <= now,
            )
            .values(status=EntitlementStatus.READY_FOR_PICKUP, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Preorder promotion sweep failed in storage")
        raise StorageFailure("Preorder promotion could not be applied") from exc

    promoted = result.rowcount or 0
    if promoted:
        logger.info("Promoted %d preorder entitlements to ready_for_pickup", promoted)
    return promoted


async def _compare_and_swap(
    db: AsyncSession,
    entitlement_id: uuid.UUID,
    *,
    expected: EntitlementStatus,
    new_status: EntitlementStatus,
    picked_up_at: Optional[datetime],
    now: datetime,
) -> Entitlement:
    current_status: Optional[EntitlementStatus] = None
    try:
        result = await db.execute(
            update(Entitlement)
            .where(Entitlement.id == entitlement_id, Entitlement.status == expected)
            .values(status=new_status, picked_up_at=picked_up_at, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        swapped = result.rowcount == 1
        if swapped:
            await db.commit()
        else:
            current = await db.execute(
                select(Entitlement.status).where(Entitlement.id == entitlement_id)
            )
            current_status = current.scalar_one_or_none()
            await db.rollback()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Entitlement %s transition failed in storage", entitlement_id)
        raise StorageFailure(
            "Pickup status could not be updated", entitlement_id=str(entitlement_id)
        ) from exc

    if not swapped:
        if current_status is None:
            raise EntitlementNotFound(entitlement_id)
        raise InvalidTransition(entitlement_id, current_status.value, expected.value)
    return await get_entitlement(db, entitlement_id)


async def mark_picked_up(
    db: AsyncSession, entitlement_id: uuid.UUID, now: Optional[datetime] = None
) -> Entitlement:
    """ready_for_pickup -> picked_up, stamping picked_up_at."""
    now = ensure_utc(now) or utc_now()
    entitlement = await _compare_and_swap(
        db,
        entitlement_id,
        expected=EntitlementStatus.READY_FOR_PICKUP,
        new_status=EntitlementStatus.PICKED_UP,
        picked_up_at=now,
        now=now,
    )
    logger.info("Entitlement %s picked up", entitlement_id)
    return entitlement


async def mark_not_picked_up(
    db: AsyncSession, entitlement_id: uuid.UUID, now: Optional[datetime] = None
) -> Entitlement:
    """Undo a pickup: picked_up -> ready_for_pickup, clearing picked_up_at."""
    now = ensure_utc(now) or utc_now()
    entitlement = await _compare_and_swap(
        db,
        entitlement_id,
        expected=EntitlementStatus.PICKED_UP,
        new_status=EntitlementStatus.READY_FOR_PICKUP,
        picked_up_at=None,
        now=now,
    )
    logger.info("Entitlement %s pickup reverted", entitlement_id)
    return entitlement


async def fulfill_for_member(
    db: AsyncSession,
    member_id: uuid.UUID,
    entitlement_ids: Iterable[uuid.UUID],
    now: Optional[datetime] = None,
) -> list[uuid.UUID]:
    """Mark several of one member's entitlements picked up.

    Ids belonging to someone else, or not currently ready, are skipped.
    Returns the ids that were actually fulfilled.
    """
    now = ensure_utc(now) or utc_now()
    ids = list(dict.fromkeys(entitlement_ids))
    if not ids:
        return []

    fulfilled: list[uuid.UUID] = []
    try:
        for entitlement_id in ids:
            result = await db.execute(
                update(Entitlement)
                .where(
                    Entitlement.id == entitlement_id,
                    Entitlement.member_id == member_id,
                    Entitlement.status == EntitlementStatus.READY_FOR_PICKUP,
                )
                .values(
                    status=EntitlementStatus.PICKED_UP, picked_up_at=now, updated_at=now
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                fulfilled.append(entitlement_id)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Bulk fulfil for member %s failed in storage", member_id)
        raise StorageFailure(
            "Pickups could not be recorded", member_id=str(member_id)
        ) from exc

    logger.info(
        "Fulfilled %d of %d entitlements for member %s",
        len(fulfilled),
        len(ids),
        member_id,
    )
    return fulfilled


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_entitlement(db: AsyncSession, entitlement_id: uuid.UUID) -> Entitlement:
    result = await db.execute(
        select(Entitlement)
        .where(Entitlement.id == entitlement_id)
        .execution_options(populate_existing=True)
    )
    entitlement = result.scalar_one_or_none()
    if entitlement is None:
        raise EntitlementNotFound(entitlement_id)
    return entitlement


async def get_entitlements_for_member(
    db: AsyncSession, member_id: uuid.UUID
) -> MemberEntitlements:
    """Split a member's entitlements into ready and upcoming.

    Callers should run ``promote_preorders`` first so the split reflects the
    current time.
    """
    result = await db.execute(
        select(Entitlement)
        .where(
            Entitlement.member_id == member_id,
            Entitlement.status.in_(
                [EntitlementStatus.READY_FOR_PICKUP, EntitlementStatus.NOT_READY]
            ),
        )
        .order_by(Entitlement.created_at)
        .execution_options(populate_existing=True)
    )
    grouped = MemberEntitlements(member_id=member_id)
    for entitlement in result.scalars().all():
        if entitlement.status == EntitlementStatus.READY_FOR_PICKUP:
            grouped.ready_for_pickup.append(entitlement)
        else:
            grouped.upcoming.append(entitlement)
    return grouped


async def list_pickups(
    db: AsyncSession, member_id: Optional[uuid.UUID] = None
) -> list[PickupRow]:
    """Ready and picked-up entitlements with member and product names."""
    if member_id is not None and await get_member(db, member_id) is None:
        raise MemberNotFound(member_id)

    query = (
        select(Entitlement, Member.name, Member.email, Product.name)
        .outerjoin(Member, Member.id == Entitlement.member_id)
        .outerjoin(Product, Product.id == Entitlement.product_id)
        .where(Entitlement.status.in_(PICKUP_VISIBLE_STATUSES))
        .order_by(Entitlement.created_at)
        .execution_options(populate_existing=True)
    )
    if member_id is not None:
        query = query.where(Entitlement.member_id == member_id)

    result = await db.execute(query)
    return [
        PickupRow(
            id=entitlement.id,
            member_id=entitlement.member_id,
            product_id=entitlement.product_id,
            product_name=product_name or str(entitlement.product_id),
            quantity=entitlement.quantity,
            status=entitlement.status,
            source=entitlement.source,
            release_at=entitlement.release_at,
            picked_up_at=entitlement.picked_up_at,
            member_name=member_name,
            member_email=member_email,
        )
        for entitlement, member_name, member_email, product_name in result.all()
    ]
