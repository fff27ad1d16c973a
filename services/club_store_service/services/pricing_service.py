"""Pricing & tax calculator for member checkout.

Money is integer cents throughout. Tax is computed per line with half-up
rounding and aggregated by tax rate for filing reports.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence

from libs.common.currency import percent_of_cents
from libs.common.datetime_utils import ensure_utc, utc_now
from services.club_store_service.errors import BelowMinimumCharge, PreorderWindowClosed
from services.club_store_service.models import PaymentMethod, Product
from services.club_store_service.services.catalog_service import (
    load_products,
    load_tax_rates,
    normalize_club_code,
)
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_MINIMUM_CHARGE_CENTS = 50


@dataclass(frozen=True, slots=True)
class CartLine:
    product_id: uuid.UUID
    quantity: int


@dataclass(frozen=True, slots=True)
class PricedLine:
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price_cents: int
    line_subtotal_cents: int
    tax_rate_id: Optional[uuid.UUID]
    line_tax_cents: int


@dataclass(slots=True)
class CartComputation:
    subtotal_cents: int = 0
    tax_cents: int = 0
    # str(tax_rate_id) -> cents, summed across lines sharing a rate
    tax_breakdown: dict[str, int] = field(default_factory=dict)
    membership_cents: int = 0
    tip_cents: int = 0
    total_cents: int = 0
    lines: list[PricedLine] = field(default_factory=list)


def resolve_unit_price(product: Product, member_club_codes: Iterable[str]) -> int:
    """Lowest club override among the member's clubs, else the base price."""
    codes = {normalize_club_code(code) for code in member_club_codes}
    overrides = [
        club_price.price_cents
        for club_price in product.club_prices
        if normalize_club_code(club_price.club_code) in codes
    ]
    if overrides:
        return min(overrides)
    return product.base_price_cents


def is_within_preorder_window(product: Product, now: Optional[datetime] = None) -> bool:
    """True if ``now`` is inside [preorder_start_at, preorder_end_at].

    A preorder without both bounds is never open.
    """
    if not product.is_preorder:
        return False
    start = ensure_utc(product.preorder_start_at)
    end = ensure_utc(product.preorder_end_at)
    if start is None or end is None:
        return False
    now = ensure_utc(now) or utc_now()
    return start <= now <= end


def enforce_preorder_windows(
    products: Iterable[Product], now: Optional[datetime] = None
) -> None:
    """Reject the whole checkout if any preorder line is out of its window."""
    for product in products:
        if product.is_preorder and not is_within_preorder_window(product, now):
            raise PreorderWindowClosed(product.id, product.name)


async def compute_cart_total(
    db: AsyncSession,
    items: Sequence[CartLine],
    member_club_codes: Iterable[str],
) -> CartComputation:
    """Price a cart. Stale lines (missing product, quantity <= 0) are skipped."""
    club_codes = list(member_club_codes)
    products = await load_products(db, (item.product_id for item in items))
    tax_rates = await load_tax_rates(
        db, (product.tax_rate_id for product in products.values())
    )

    cart = CartComputation()
    for item in items:
        product = products.get(item.product_id)
        if product is None or item.quantity <= 0:
            continue

        unit_price = resolve_unit_price(product, club_codes)
        line_subtotal = unit_price * item.quantity

        line_tax = 0
        rate = tax_rates.get(product.tax_rate_id) if product.tax_rate_id else None
        if rate is not None:
            line_tax = percent_of_cents(line_subtotal, rate.rate_percent)
            key = str(rate.id)
            cart.tax_breakdown[key] = cart.tax_breakdown.get(key, 0) + line_tax

        cart.subtotal_cents += line_subtotal
        cart.lines.append(
            PricedLine(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                unit_price_cents=unit_price,
                line_subtotal_cents=line_subtotal,
                tax_rate_id=rate.id if rate is not None else None,
                line_tax_cents=line_tax,
            )
        )

    cart.tax_cents = sum(cart.tax_breakdown.values())
    cart.total_cents = cart.subtotal_cents + cart.tax_cents
    return cart


def compute_final_total(
    cart: CartComputation,
    *,
    membership_cents: int = 0,
    tip_cents: int = 0,
    minimum_charge_cents: int = DEFAULT_MINIMUM_CHARGE_CENTS,
) -> CartComputation:
    """Add the untaxed membership fee and tip, then enforce the minimum charge."""
    cart.membership_cents = membership_cents
    cart.tip_cents = tip_cents
    cart.total_cents = cart.subtotal_cents + cart.tax_cents + membership_cents + tip_cents
    if cart.total_cents < minimum_charge_cents:
        raise BelowMinimumCharge(cart.total_cents, minimum_charge_cents)
    return cart


def recommend_payment_method(total_cents: int, ach_threshold_cents: int) -> PaymentMethod:
    """Advisory default: bank transfer for large totals when enabled."""
    if ach_threshold_cents > 0 and total_cents >= ach_threshold_cents:
        return PaymentMethod.US_BANK_ACCOUNT
    return PaymentMethod.CARD
