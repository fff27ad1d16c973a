"""Server-side carts.

A cart is addressed by a session id the client holds on to (the
``X-Cart-Session`` header, a ``cart_session_id`` query parameter or body
field). Lines carry a product and a quantity clamped to 0..99; setting a line
to 0 removes it. Carts store no prices: pricing happens at quote time.
"""

import math
import uuid
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import dialect_insert
from services.club_store_service.errors import (
    CartNotFound,
    InvalidCartSession,
    StorageFailure,
)
from services.club_store_service.models import MAX_CART_ITEM_QUANTITY, Cart, CartItem
from services.club_store_service.services.catalog_service import get_product
from services.club_store_service.services.pricing_service import CartLine
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

SESSION_ID_MAX_LENGTH = 64


def new_session_id() -> str:
    return f"cart_{uuid.uuid4().hex}"


def normalize_session_id(session_id: Optional[str]) -> Optional[str]:
    """Strip the id; blank means none. Over-long ids are rejected."""
    value = (session_id or "").strip()
    if not value:
        return None
    if len(value) > SESSION_ID_MAX_LENGTH:
        raise InvalidCartSession(
            f"cart session id must be at most {SESSION_ID_MAX_LENGTH} characters"
        )
    return value


def clamp_quantity(value: Any) -> int:
    """Floor to a whole number in 0..99. Anything non-numeric counts as 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, min(MAX_CART_ITEM_QUANTITY, math.floor(number)))


async def _find_cart(db: AsyncSession, session_id: str) -> Optional[Cart]:
    result = await db.execute(
        select(Cart)
        .where(Cart.session_id == session_id)
        .options(selectinload(Cart.items))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _check_owner(cart: Cart, owner_user_id: Optional[str]) -> None:
    # Someone else's cart reads as missing.
    if cart.owner_user_id and owner_user_id and cart.owner_user_id != owner_user_id:
        raise CartNotFound(cart.session_id)


async def open_cart(
    db: AsyncSession,
    session_id: Optional[str] = None,
    *,
    owner_user_id: Optional[str] = None,
) -> Cart:
    """Return the cart for ``session_id``, creating it if needed.

    Without a session id a new cart with a generated id is opened.
    """
    session_id = normalize_session_id(session_id) or new_session_id()
    cart = await _find_cart(db, session_id)
    if cart is None:
        try:
            db.add(Cart(session_id=session_id, owner_user_id=owner_user_id))
            await db.commit()
        except IntegrityError:
            # Opened concurrently under the same id; use that one.
            await db.rollback()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Opening cart %s failed in storage", session_id)
            raise StorageFailure("Cart could not be opened") from exc
        cart = await _find_cart(db, session_id)
        if cart is None:
            raise StorageFailure("Cart could not be opened")
        logger.info("Opened cart %s", session_id)

    _check_owner(cart, owner_user_id)
    return cart


async def get_cart(
    db: AsyncSession, session_id: Optional[str], *, owner_user_id: Optional[str] = None
) -> Cart:
    """Existing cart only. Raises CartNotFound."""
    normalized = normalize_session_id(session_id)
    cart = await _find_cart(db, normalized) if normalized else None
    if cart is None:
        raise CartNotFound(session_id or "")
    _check_owner(cart, owner_user_id)
    return cart


async def set_item(
    db: AsyncSession,
    session_id: Optional[str],
    product_id: uuid.UUID,
    quantity: Any,
    *,
    owner_user_id: Optional[str] = None,
) -> Cart:
    """Set a product's line to ``quantity`` (clamped); 0 removes the line."""
    cart = await open_cart(db, session_id, owner_user_id=owner_user_id)
    qty = clamp_quantity(quantity)
    if qty == 0:
        return await _delete_lines(db, cart, CartItem.product_id == product_id)

    await get_product(db, product_id)

    now = utc_now()
    insert = dialect_insert(db)
    stmt = insert(CartItem).values(
        id=uuid.uuid4(),
        cart_id=cart.id,
        product_id=product_id,
        quantity=qty,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[CartItem.cart_id, CartItem.product_id],
        set_={"quantity": stmt.excluded.quantity, "updated_at": stmt.excluded.updated_at},
    )
    try:
        await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Cart %s line update failed in storage", cart.session_id)
        raise StorageFailure("Cart could not be updated") from exc

    logger.info("Cart %s: product %s set to %d", cart.session_id, product_id, qty)
    return await _find_cart(db, cart.session_id)


async def remove_item(
    db: AsyncSession,
    session_id: Optional[str],
    product_id: uuid.UUID,
    *,
    owner_user_id: Optional[str] = None,
) -> Cart:
    cart = await open_cart(db, session_id, owner_user_id=owner_user_id)
    return await _delete_lines(db, cart, CartItem.product_id == product_id)


async def clear_cart(
    db: AsyncSession, session_id: Optional[str], *, owner_user_id: Optional[str] = None
) -> Cart:
    cart = await open_cart(db, session_id, owner_user_id=owner_user_id)
    return await _delete_lines(db, cart)


async def _delete_lines(db: AsyncSession, cart: Cart, *criteria) -> Cart:
    try:
        await db.execute(
            delete(CartItem)
            .where(CartItem.cart_id == cart.id, *criteria)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Cart %s line removal failed in storage", cart.session_id)
        raise StorageFailure("Cart could not be updated") from exc
    return await _find_cart(db, cart.session_id)


async def cart_lines(
    db: AsyncSession, session_id: Optional[str], *, owner_user_id: Optional[str] = None
) -> list[CartLine]:
    """The cart's lines as checkout input."""
    cart = await get_cart(db, session_id, owner_user_id=owner_user_id)
    return [CartLine(product_id=item.product_id, quantity=item.quantity) for item in cart.items]
