"""Staff pickup desk router."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_staff
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.club_store_service.schemas import (
    EntitlementResponse,
    FulfillRequest,
    FulfillResponse,
    MemberPickupsResponse,
    PickupListResponse,
    PickupRowResponse,
    PickupToggle,
)
from services.club_store_service.services.entitlement_service import (
    fulfill_for_member,
    list_pickups,
    mark_not_picked_up,
    mark_picked_up,
    promote_preorders,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/staff/club-store", tags=["staff-club-store"])
logger = get_logger(__name__)


@router.get("/pickups", response_model=PickupListResponse)
async def get_pickups(
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Everything ready for pickup or already collected, across all members."""
    await promote_preorders(db)
    rows = await list_pickups(db)
    return PickupListResponse(
        items=[PickupRowResponse.model_validate(row) for row in rows],
        total=len(rows),
    )


@router.get("/pickups/by-member/{member_id}", response_model=MemberPickupsResponse)
async def get_member_pickups(
    member_id: uuid.UUID,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Pickup view for one member (scan page)."""
    await promote_preorders(db)
    rows = await list_pickups(db, member_id=member_id)
    return MemberPickupsResponse(
        member_id=member_id,
        items=[PickupRowResponse.model_validate(row) for row in rows],
        total=len(rows),
    )


@router.patch("/pickups/{entitlement_id}", response_model=EntitlementResponse)
async def toggle_pickup(
    entitlement_id: uuid.UUID,
    body: PickupToggle,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Mark an entitlement picked up, or undo a pickup."""
    if body.picked_up:
        entitlement = await mark_picked_up(db, entitlement_id)
    else:
        entitlement = await mark_not_picked_up(db, entitlement_id)
    logger.info(
        "Pickup toggle on %s to %s by %s",
        entitlement_id,
        entitlement.status.value,
        current_user.user_id,
    )
    return EntitlementResponse.model_validate(entitlement)


@router.post("/members/{member_id}/pickups/fulfill", response_model=FulfillResponse)
async def fulfill_member_pickups(
    member_id: uuid.UUID,
    body: FulfillRequest,
    current_user: AuthUser = Depends(require_staff),
    db: AsyncSession = Depends(get_async_db),
):
    """Hand over several of a member's items at once."""
    requested = list(dict.fromkeys(body.entitlement_ids))
    fulfilled = await fulfill_for_member(db, member_id, requested)
    done = set(fulfilled)
    return FulfillResponse(
        member_id=member_id,
        fulfilled_ids=fulfilled,
        skipped_ids=[eid for eid in requested if eid not in done],
    )
