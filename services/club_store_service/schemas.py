"""Pydantic schemas for club store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.club_store_service.models import (
    AllocationTargetType,
    EntitlementSource,
    EntitlementStatus,
    PaymentMethod,
)

# ============================================================================
# ALLOCATION SCHEMAS
# ============================================================================


class AllocationCreate(BaseModel):
    # Range and target checks happen in the allocation engine so callers get
    # the structured business error rather than a schema error.
    quantity_per_person: Any
    target_type: str
    club_code: Optional[str] = None
    member_ids: Optional[list[str]] = None
    pull_from_inventory: bool = False


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    target_type: AllocationTargetType
    club_code: Optional[str] = None
    member_ids: list[str]
    quantity_per_person: int
    pull_from_inventory: bool
    total_quantity: int
    created_by: Optional[str] = None
    created_at: datetime


# ============================================================================
# ENTITLEMENT & PICKUP SCHEMAS
# ============================================================================


class EntitlementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    member_id: uuid.UUID
    product_id: uuid.UUID
    allocation_id: Optional[uuid.UUID] = None
    quantity: int
    status: EntitlementStatus
    source: EntitlementSource
    release_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    created_at: datetime


class MemberEntitlementsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: uuid.UUID
    ready_for_pickup: list[EntitlementResponse] = []
    upcoming: list[EntitlementResponse] = []


class PickupRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    member_id: uuid.UUID
    member_name: Optional[str] = None
    member_email: Optional[str] = None
    product_id: uuid.UUID
    product_name: str
    quantity: int
    status: EntitlementStatus
    source: EntitlementSource
    release_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None


class PickupListResponse(BaseModel):
    items: list[PickupRowResponse]
    total: int


class MemberPickupsResponse(PickupListResponse):
    member_id: uuid.UUID


class PickupToggle(BaseModel):
    picked_up: bool


class FulfillRequest(BaseModel):
    entitlement_ids: list[uuid.UUID] = Field(default_factory=list)


class FulfillResponse(BaseModel):
    member_id: uuid.UUID
    fulfilled_ids: list[uuid.UUID]
    skipped_ids: list[uuid.UUID]


class PromoteResponse(BaseModel):
    promoted: int


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class CheckoutItem(BaseModel):
    product_id: uuid.UUID
    quantity: int


class CheckoutQuoteRequest(BaseModel):
    items: list[CheckoutItem] = Field(default_factory=list)
    member_id: Optional[uuid.UUID] = None
    club_codes: Optional[list[str]] = None
    membership_offering_id: Optional[uuid.UUID] = None
    tip_cents: float = 0
    # Priced instead of `items` when items is empty.
    cart_session_id: Optional[str] = None


class QuoteLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price_cents: int
    line_subtotal_cents: int
    tax_rate_id: Optional[uuid.UUID] = None
    line_tax_cents: int


class CheckoutQuoteResponse(BaseModel):
    subtotal_cents: int
    tax_cents: int
    tax_breakdown: dict[str, int]
    membership_cents: int
    tip_cents: int
    total_cents: int
    currency: str
    default_payment_method: PaymentMethod
    club_codes: list[str]
    lines: list[QuoteLine]
    payment_metadata: dict[str, str]


class PaymentItem(BaseModel):
    product_id: uuid.UUID
    # Fractional quantities are floored when entitlements are issued.
    quantity: float


class PaymentSucceededEvent(BaseModel):
    member_id: uuid.UUID
    items: list[PaymentItem] = Field(default_factory=list)
    payment_reference: Optional[str] = Field(None, max_length=255)
    tax_breakdown: Optional[dict[str, int]] = None
    subtotal_cents: int = Field(0, ge=0)
    tip_cents: int = Field(0, ge=0)
    total_cents: int = Field(0, ge=0)
    occurred_at: Optional[datetime] = None


class PaymentEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    duplicate: bool
    entitlement_ids: list[uuid.UUID]
    skipped_product_ids: list[str]


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemSet(BaseModel):
    product_id: uuid.UUID
    # Clamped to 0..99 by the cart service; 0 removes the line.
    quantity: Any = 1
    cart_session_id: Optional[str] = None


class CartSessionRequest(BaseModel):
    cart_session_id: Optional[str] = None


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    quantity: int


class CartResponse(BaseModel):
    cart_session_id: str
    items: list[CartItemResponse]
    item_count: int


# ============================================================================
# LEDGER & REPORT SCHEMAS
# ============================================================================


class LedgerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    product_name: str
    inventory_quantity: int
    ordered_not_picked_up_count: int  # Cumulative; see outstanding_quantity
    outstanding_quantity: int
    picked_up_quantity: int


class TaxRateLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_rate_id: str
    name: str
    rate_percent: Decimal
    total_tax_cents: int
    transaction_count: int


class SalesTaxReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    total_tax_cents: int
    transaction_count: int
    rates: list[TaxRateLineResponse]


# ============================================================================
# TIP POOL SCHEMAS
# ============================================================================


class TipWithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount_cents: int
    note: Optional[str] = None
    withdrawn_by: Optional[str] = None
    withdrawn_at: datetime


class TipPoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    available_cents: int
    withdrawals: list[TipWithdrawalResponse]


class TipWithdrawRequest(BaseModel):
    amount_cents: int
    note: Optional[str] = Field(None, max_length=500)


class TipWithdrawResponse(BaseModel):
    withdrawal: TipWithdrawalResponse
    available_cents: int
