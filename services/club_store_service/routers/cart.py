"""Member cart router.

The cart session id is read from the ``X-Cart-Session`` header, then the
``cart_session_id`` query parameter, then the request body. Every response
echoes it so a client that started without one learns the generated id.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.club_store_service.models import Cart
from services.club_store_service.schemas import (
    CartItemResponse,
    CartItemSet,
    CartResponse,
    CartSessionRequest,
)
from services.club_store_service.services import cart_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/club-store", tags=["club-store-cart"])


def _session_id(*candidates: Optional[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return None


def _cart_response(cart: Cart) -> CartResponse:
    items = [CartItemResponse.model_validate(item) for item in cart.items]
    return CartResponse(
        cart_session_id=cart.session_id,
        items=items,
        item_count=sum(item.quantity for item in items),
    )


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    cart_session_id: Optional[str] = Query(None),
    x_cart_session: Optional[str] = Header(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Current cart, opened on first use."""
    cart = await cart_service.open_cart(
        db,
        _session_id(x_cart_session, cart_session_id),
        owner_user_id=current_user.user_id,
    )
    return _cart_response(cart)


@router.post("/cart/items", response_model=CartResponse)
async def set_cart_item(
    body: CartItemSet,
    cart_session_id: Optional[str] = Query(None),
    x_cart_session: Optional[str] = Header(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product or replace its quantity. Quantity 0 removes it."""
    cart = await cart_service.set_item(
        db,
        _session_id(x_cart_session, cart_session_id, body.cart_session_id),
        body.product_id,
        body.quantity,
        owner_user_id=current_user.user_id,
    )
    return _cart_response(cart)


@router.delete("/cart/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: uuid.UUID,
    cart_session_id: Optional[str] = Query(None),
    x_cart_session: Optional[str] = Header(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await cart_service.remove_item(
        db,
        _session_id(x_cart_session, cart_session_id),
        product_id,
        owner_user_id=current_user.user_id,
    )
    return _cart_response(cart)


@router.post("/cart/clear", response_model=CartResponse)
async def clear_cart(
    body: Optional[CartSessionRequest] = None,
    cart_session_id: Optional[str] = Query(None),
    x_cart_session: Optional[str] = Header(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await cart_service.clear_cart(
        db,
        _session_id(
            x_cart_session, cart_session_id, body.cart_session_id if body else None
        ),
        owner_user_id=current_user.user_id,
    )
    return _cart_response(cart)
