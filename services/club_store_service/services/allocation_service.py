"""Allocation engine: bulk grants of a product to a club or a member list.

A grant validates its target, optionally reserves stock, issues one
entitlement per member, bumps the fulfillment ledger and records an
immutable Allocation row. All of it commits in one transaction or none of
it does.
"""

import uuid
from typing import Any, Iterable, Optional

from libs.common.logging import get_logger
from services.club_store_service.errors import (
    EmptyTarget,
    InsufficientInventory,
    InvalidQuantity,
    InvalidTarget,
    StorageFailure,
    UnknownMember,
)
from services.club_store_service.models import (
    Allocation,
    AllocationTargetType,
    EntitlementSource,
)
from services.club_store_service.services.catalog_service import (
    ClubDirectory,
    current_inventory,
    find_missing_member_ids,
    get_product,
    reserve_inventory,
)
from services.club_store_service.services.entitlement_service import (
    NewEntitlement,
    create_entitlements,
    initial_state_for,
)
from services.club_store_service.services.ledger_service import increment_ordered
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _validate_quantity(quantity_per_person: Any) -> int:
    if (
        isinstance(quantity_per_person, bool)
        or not isinstance(quantity_per_person, int)
        or quantity_per_person < 1
    ):
        raise InvalidQuantity(
            "quantity_per_person must be a positive integer",
            quantity_per_person=quantity_per_person,
        )
    return quantity_per_person


def _validate_target(target_type: Any) -> AllocationTargetType:
    try:
        return AllocationTargetType(target_type)
    except ValueError:
        raise InvalidTarget(
            "target_type must be 'club' or 'members'",
            target_type=str(target_type),
            valid_targets=[t.value for t in AllocationTargetType],
        ) from None


def _coerce_member_ids(member_ids: Optional[Iterable[Any]]) -> list[uuid.UUID]:
    """Parse and de-duplicate ids, keeping first-seen order."""
    parsed: list[uuid.UUID] = []
    invalid: list[Any] = []
    for raw in member_ids or []:
        try:
            parsed.append(raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw)))
        except ValueError:
            invalid.append(raw)
    if invalid:
        raise UnknownMember(invalid)
    return list(dict.fromkeys(parsed))


async def create_allocation(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    quantity_per_person: Any,
    target_type: Any,
    club_code: Optional[str] = None,
    member_ids: Optional[Iterable[Any]] = None,
    pull_from_inventory: bool = False,
    created_by: Optional[str] = None,
    clubs: Optional[ClubDirectory] = None,
) -> Allocation:
    """Grant ``quantity_per_person`` units of a product to every target member.

    Raises:
        ProductNotFound, InvalidQuantity, InvalidTarget, UnknownClub,
        EmptyTarget, UnknownMember: request rejected before any write.
        InsufficientInventory: stock check failed; nothing written.
        StorageFailure: the database failed mid-way; nothing committed.
    """
    product = await get_product(db, product_id)
    qty = _validate_quantity(quantity_per_person)
    target = _validate_target(target_type)
    directory = clubs or ClubDirectory(db)

    resolved_club_code: Optional[str] = None
    if target == AllocationTargetType.CLUB:
        club = await directory.require_club(club_code)
        resolved_club_code = club.code
        resolved_members = await directory.active_member_ids(club)
        if not resolved_members:
            raise EmptyTarget(
                "No members found for that club", club_code=resolved_club_code
            )
    else:
        resolved_members = _coerce_member_ids(member_ids)
        if not resolved_members:
            raise EmptyTarget(
                "member_ids must be a non-empty list for target_type 'members'"
            )
        missing = await find_missing_member_ids(db, resolved_members)
        if missing:
            raise UnknownMember(missing)

    total_quantity = qty * len(resolved_members)
    status, release_at = initial_state_for(product)

    try:
        if pull_from_inventory:
            if not await reserve_inventory(db, product.id, total_quantity):
                available = await current_inventory(db, product.id)
                await db.rollback()
                raise InsufficientInventory(required=total_quantity, available=available)

        allocation = Allocation(
            product_id=product.id,
            target_type=target,
            club_code=resolved_club_code,
            member_ids=[str(member_id) for member_id in resolved_members],
            quantity_per_person=qty,
            pull_from_inventory=pull_from_inventory,
            total_quantity=total_quantity,
            created_by=created_by,
        )
        db.add(allocation)
        await db.flush()

        await create_entitlements(
            db,
            [
                NewEntitlement(
                    member_id=member_id,
                    product_id=product.id,
                    quantity=qty,
                    status=status,
                    source=EntitlementSource.ALLOCATION,
                    release_at=release_at,
                    allocation_id=allocation.id,
                )
                for member_id in resolved_members
            ],
        )
        await increment_ordered(db, product.id, total_quantity)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Allocation for product %s failed in storage", product_id)
        raise StorageFailure(
            "Allocation could not be saved; no changes were made",
            product_id=str(product_id),
        ) from exc

    logger.info(
        "Allocated %d x %d of product %s to %s (%s), inventory pulled=%s",
        qty,
        len(resolved_members),
        product.id,
        resolved_club_code or "member list",
        status.value,
        pull_from_inventory,
    )
    return allocation


async def list_allocations(db: AsyncSession, product_id: uuid.UUID) -> list[Allocation]:
    """All allocations for a product, newest first."""
    await get_product(db, product_id)
    result = await db.execute(
        select(Allocation)
        .where(Allocation.product_id == product_id)
        .order_by(Allocation.created_at.desc())
    )
    return list(result.scalars().all())
