"""Internal service-to-service club store endpoints.

Called with a service-role JWT by the payments webhook relay and the
scheduler, not by frontend clients directly.
"""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_service_role
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.club_store_service.schemas import (
    PaymentEventResponse,
    PaymentSucceededEvent,
    PromoteResponse,
)
from services.club_store_service.services.checkout_service import (
    on_payment_succeeded,
)
from services.club_store_service.services.entitlement_service import (
    promote_preorders,
)
from services.club_store_service.services.pricing_service import CartLine
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/internal/club-store", tags=["internal-club-store"])


@router.post("/payments/succeeded", response_model=PaymentEventResponse)
async def payment_succeeded(
    body: PaymentSucceededEvent,
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Turn a successful payment into pickup entitlements."""
    result = await on_payment_succeeded(
        db,
        member_id=body.member_id,
        items=[
            CartLine(product_id=item.product_id, quantity=item.quantity)
            for item in body.items
        ],
        payment_reference=body.payment_reference,
        tax_breakdown=body.tax_breakdown,
        subtotal_cents=body.subtotal_cents,
        tip_cents=body.tip_cents,
        total_cents=body.total_cents,
        occurred_at=body.occurred_at,
    )
    return PaymentEventResponse.model_validate(result)


@router.post("/entitlements/promote", response_model=PromoteResponse)
async def promote_due_preorders(
    _service: AuthUser = Depends(require_service_role),
    db: AsyncSession = Depends(get_async_db),
):
    """Scheduled sweep: release preorders whose release date has passed."""
    promoted = await promote_preorders(db)
    return PromoteResponse(promoted=promoted)
