"""Member-facing club store routes."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.club_store_service.schemas import (
    EntitlementResponse,
    MemberEntitlementsResponse,
)
from services.club_store_service.services.entitlement_service import (
    get_entitlements_for_member,
    promote_preorders,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/club-store", tags=["club-store"])


@router.get(
    "/members/{member_id}/entitlements", response_model=MemberEntitlementsResponse
)
async def get_my_entitlements(
    member_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """What a member can collect now, and what is still on its way."""
    if not current_user.is_staff and current_user.user_id != str(member_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only view your own entitlements",
        )

    await promote_preorders(db)
    grouped = await get_entitlements_for_member(db, member_id)
    return MemberEntitlementsResponse(
        member_id=member_id,
        ready_for_pickup=[
            EntitlementResponse.model_validate(e) for e in grouped.ready_for_pickup
        ],
        upcoming=[EntitlementResponse.model_validate(e) for e in grouped.upcoming],
    )
