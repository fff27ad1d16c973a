"""Admin club store router: allocations, ledger, sales-tax report and tips."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.club_store_service.schemas import (
    AllocationCreate,
    AllocationResponse,
    LedgerResponse,
    SalesTaxReportResponse,
    TipPoolResponse,
    TipWithdrawalResponse,
    TipWithdrawRequest,
    TipWithdrawResponse,
)
from services.club_store_service.services.allocation_service import (
    create_allocation,
    list_allocations,
)
from services.club_store_service.services.ledger_service import get_ledger
from services.club_store_service.services.report_service import sales_tax_report
from services.club_store_service.services.tip_service import (
    get_tip_pool,
    withdraw_tips,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/club-store", tags=["admin-club-store"])
logger = get_logger(__name__)


# ============================================================================
# ALLOCATIONS
# ============================================================================


@router.post(
    "/products/{product_id}/allocations",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def allocate_product(
    product_id: uuid.UUID,
    body: AllocationCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Grant a product to every active member of a club, or to a member list."""
    allocation = await create_allocation(
        db,
        product_id=product_id,
        quantity_per_person=body.quantity_per_person,
        target_type=body.target_type,
        club_code=body.club_code,
        member_ids=body.member_ids,
        pull_from_inventory=body.pull_from_inventory,
        created_by=current_user.email or current_user.user_id,
    )
    return AllocationResponse.model_validate(allocation)


@router.get(
    "/products/{product_id}/allocations", response_model=list[AllocationResponse]
)
async def get_product_allocations(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Allocation history for a product, newest first."""
    allocations = await list_allocations(db, product_id)
    return [AllocationResponse.model_validate(a) for a in allocations]


@router.get("/products/{product_id}/ledger", response_model=LedgerResponse)
async def get_product_ledger(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    ledger = await get_ledger(db, product_id)
    return LedgerResponse.model_validate(ledger)


# ============================================================================
# REPORTS
# ============================================================================


@router.get("/reports/sales-tax", response_model=SalesTaxReportResponse)
async def get_sales_tax_report(
    month: str = Query(..., description="Month to report, as YYYY-MM"),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Tax collected in a month, grouped by tax rate."""
    report = await sales_tax_report(db, month)
    return SalesTaxReportResponse.model_validate(report)


# ============================================================================
# TIPS
# ============================================================================


@router.get("/tips", response_model=TipPoolResponse)
async def get_tips(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    pool = await get_tip_pool(db)
    return TipPoolResponse.model_validate(pool)


@router.post("/tips/withdraw", response_model=TipWithdrawResponse)
async def withdraw_from_tips(
    body: TipWithdrawRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Withdraw tips from the pool."""
    withdrawal, balance = await withdraw_tips(
        db,
        amount_cents=body.amount_cents,
        note=body.note,
        withdrawn_by=current_user.email or current_user.user_id,
    )
    return TipWithdrawResponse(
        withdrawal=TipWithdrawalResponse.model_validate(withdrawal),
        available_cents=balance,
    )
