"""Checkout quote router.

The quote is what the storefront hands to the payment provider: amount,
currency, default payment method and the metadata that comes back on the
success webhook.
"""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.club_store_service.schemas import (
    CheckoutQuoteRequest,
    CheckoutQuoteResponse,
    QuoteLine,
)
from services.club_store_service.services.checkout_service import quote_checkout
from services.club_store_service.services.pricing_service import CartLine
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/club-store", tags=["club-store-checkout"])


@router.post("/checkout/quote", response_model=CheckoutQuoteResponse)
async def create_checkout_quote(
    body: CheckoutQuoteRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    quote = await quote_checkout(
        db,
        items=[CartLine(product_id=i.product_id, quantity=i.quantity) for i in body.items],
        member_id=body.member_id,
        club_codes=body.club_codes,
        membership_offering_id=body.membership_offering_id,
        tip_cents=body.tip_cents,
        cart_session_id=body.cart_session_id,
        cart_owner_id=current_user.user_id,
    )
    cart = quote.cart
    return CheckoutQuoteResponse(
        subtotal_cents=cart.subtotal_cents,
        tax_cents=cart.tax_cents,
        tax_breakdown=cart.tax_breakdown,
        membership_cents=cart.membership_cents,
        tip_cents=cart.tip_cents,
        total_cents=cart.total_cents,
        currency=quote.currency,
        default_payment_method=quote.default_payment_method,
        club_codes=quote.club_codes,
        lines=[QuoteLine.model_validate(line) for line in cart.lines],
        payment_metadata=quote.payment_metadata,
    )
