"""Checkout: quoting a cart for the payment provider, and turning a
successful payment into pickup entitlements.

The provider integration itself lives elsewhere. ``quote_checkout`` produces
the amount, tax breakdown and metadata to hand to it; the provider's success
webhook is relayed to ``on_payment_succeeded``.
"""

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from libs.common.config import get_settings
from libs.common.currency import format_cents
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.club_store_service.errors import (
    InvalidQuantity,
    StorageFailure,
    UnknownMembershipOffering,
)
from services.club_store_service.models import (
    EntitlementSource,
    PaymentMethod,
    SalesTaxRecord,
)
from services.club_store_service.services.cart_service import cart_lines
from services.club_store_service.services.catalog_service import (
    ClubDirectory,
    get_membership_offering,
    load_products,
)
from services.club_store_service.services.entitlement_service import (
    NewEntitlement,
    create_entitlements,
    initial_state_for,
)
from services.club_store_service.services.ledger_service import increment_ordered
from services.club_store_service.services.pricing_service import (
    CartComputation,
    CartLine,
    compute_cart_total,
    compute_final_total,
    enforce_preorder_windows,
    recommend_payment_method,
)
from services.club_store_service.services.tip_service import credit_tips
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(slots=True)
class CheckoutQuote:
    cart: CartComputation
    currency: str
    default_payment_method: PaymentMethod
    club_codes: list[str]
    payment_metadata: dict[str, str]


@dataclass(slots=True)
class PaymentEventResult:
    duplicate: bool = False
    entitlement_ids: list[uuid.UUID] = field(default_factory=list)
    skipped_product_ids: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Quote
# ---------------------------------------------------------------------------


async def quote_checkout(
    db: AsyncSession,
    *,
    items: Sequence[CartLine],
    member_id: Optional[uuid.UUID] = None,
    club_codes: Optional[Iterable[str]] = None,
    membership_offering_id: Optional[uuid.UUID] = None,
    tip_cents: Any = 0,
    cart_session_id: Optional[str] = None,
    cart_owner_id: Optional[str] = None,
    now: Optional[datetime] = None,
    clubs: Optional[ClubDirectory] = None,
) -> CheckoutQuote:
    """Price a checkout and build the payload for the payment provider.

    Club codes given explicitly are validated against the current club set.
    Without them, the member's active memberships are used. When no items are
    passed, the lines of the cart ``cart_session_id`` are priced instead.
    """
    settings = get_settings()
    directory = clubs or ClubDirectory(db)

    requested_codes = list(club_codes or [])
    if requested_codes:
        resolved_codes = await directory.validate_codes(requested_codes)
    elif member_id is not None:
        resolved_codes = await directory.member_club_codes(member_id)
    else:
        resolved_codes = []

    if (
        isinstance(tip_cents, bool)
        or not isinstance(tip_cents, (int, float))
        or not math.isfinite(tip_cents)
        or tip_cents < 0
    ):
        # str() keeps NaN/Infinity out of the JSON error body.
        raise InvalidQuantity(
            "tip_cents must be a finite non-negative number", tip_cents=str(tip_cents)
        )
    tip = int(math.floor(tip_cents))

    if not items and cart_session_id:
        items = await cart_lines(db, cart_session_id, owner_user_id=cart_owner_id)

    products = await load_products(db, (item.product_id for item in items))
    enforce_preorder_windows(
        (products[item.product_id] for item in items if item.product_id in products),
        now,
    )

    cart = await compute_cart_total(db, items, resolved_codes)

    membership_cents = 0
    if membership_offering_id is not None:
        offering = await get_membership_offering(db, membership_offering_id)
        if offering is None or not offering.is_active:
            raise UnknownMembershipOffering(
                "Invalid or inactive membership offering",
                membership_offering_id=str(membership_offering_id),
            )
        membership_cents = offering.price_cents

    compute_final_total(
        cart,
        membership_cents=membership_cents,
        tip_cents=tip,
        minimum_charge_cents=settings.MINIMUM_CHARGE_CENTS,
    )
    method = recommend_payment_method(
        cart.total_cents, settings.ACH_DEFAULT_THRESHOLD_CENTS
    )

    metadata = {
        "member_id": str(member_id) if member_id else "",
        "membership_offering_id": str(membership_offering_id) if membership_offering_id else "",
        "cart_items": json.dumps(
            [
                {"product_id": str(line.product_id), "quantity": line.quantity}
                for line in cart.lines
            ]
        ),
        "item_count": str(len(cart.lines)),
        "subtotal_cents": str(cart.subtotal_cents),
        "tip_cents": str(cart.tip_cents),
        "tax_breakdown": json.dumps(cart.tax_breakdown),
    }

    logger.info(
        "Checkout quote for member %s: %s (%d lines, %s)",
        member_id,
        format_cents(cart.total_cents, settings.CURRENCY),
        len(cart.lines),
        method.value,
    )
    return CheckoutQuote(
        cart=cart,
        currency=settings.CURRENCY,
        default_payment_method=method,
        club_codes=resolved_codes,
        payment_metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Payment success
# ---------------------------------------------------------------------------


def _whole_quantity(value: Any) -> int:
    """Floor a purchased quantity; NaN and infinities count as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return int(math.floor(value))


async def _existing_record(
    db: AsyncSession, payment_reference: str
) -> Optional[SalesTaxRecord]:
    result = await db.execute(
        select(SalesTaxRecord).where(
            SalesTaxRecord.payment_reference == payment_reference
        )
    )
    return result.scalar_one_or_none()


async def on_payment_succeeded(
    db: AsyncSession,
    *,
    member_id: uuid.UUID,
    items: Sequence[CartLine],
    payment_reference: Optional[str] = None,
    tax_breakdown: Optional[dict[str, int]] = None,
    subtotal_cents: int = 0,
    tip_cents: int = 0,
    total_cents: int = 0,
    occurred_at: Optional[datetime] = None,
) -> PaymentEventResult:
    """Issue entitlements for a paid cart.

    Preorder products with a release date start not_ready until that date;
    everything else is ready for pickup at once. Lines whose product no longer
    exists, or whose quantity floors below 1, are skipped. Inventory is not
    touched. With a ``payment_reference`` the event
    is idempotent: a redelivery changes nothing and reports ``duplicate``.
    """
    occurred_at = ensure_utc(occurred_at) or utc_now()
    outcome = PaymentEventResult()

    if payment_reference and await _existing_record(db, payment_reference):
        logger.info("Duplicate payment event %s ignored", payment_reference)
        outcome.duplicate = True
        return outcome

    products = await load_products(db, (item.product_id for item in items))

    entries: list[NewEntitlement] = []
    for item in items:
        product = products.get(item.product_id)
        quantity = _whole_quantity(item.quantity)
        if product is None or quantity < 1:
            outcome.skipped_product_ids.append(str(item.product_id))
            continue
        status, release_at = initial_state_for(product)
        entries.append(
            NewEntitlement(
                member_id=member_id,
                product_id=product.id,
                quantity=quantity,
                status=status,
                source=(
                    EntitlementSource.PREORDER
                    if product.is_preorder
                    else EntitlementSource.ORDER
                ),
                release_at=release_at,
            )
        )

    try:
        if payment_reference:
            db.add(
                SalesTaxRecord(
                    payment_reference=payment_reference,
                    member_id=member_id,
                    recorded_on=occurred_at.date(),
                    tax_breakdown={
                        str(rate_id): int(cents)
                        for rate_id, cents in (tax_breakdown or {}).items()
                    },
                    subtotal_cents=subtotal_cents,
                    tip_cents=tip_cents,
                    total_cents=total_cents,
                )
            )
            # Surfaces a concurrent redelivery before any other write.
            await db.flush()

        created = await create_entitlements(db, entries) if entries else []
        for entry in entries:
            await increment_ordered(db, entry.product_id, entry.quantity)
        await credit_tips(db, tip_cents)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if payment_reference and await _existing_record(db, payment_reference):
            logger.info("Concurrent duplicate payment event %s ignored", payment_reference)
            return PaymentEventResult(duplicate=True)
        logger.exception("Payment event %s violated a constraint", payment_reference)
        raise StorageFailure("Payment event could not be recorded") from None
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Payment event %s failed in storage", payment_reference)
        raise StorageFailure("Payment event could not be recorded") from exc

    outcome.entitlement_ids = [entitlement.id for entitlement in created]
    logger.info(
        "Payment %s for member %s: %d entitlements issued, %d lines skipped",
        payment_reference,
        member_id,
        len(created),
        len(outcome.skipped_product_ids),
    )
    return outcome
