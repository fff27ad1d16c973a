"""Read access to catalog facts plus the atomic inventory reservation."""

import uuid
from typing import Iterable, Optional, Sequence

from libs.common.logging import get_logger
from services.club_store_service.errors import ProductNotFound, UnknownClub
from services.club_store_service.models import (
    Club,
    ClubMembership,
    Member,
    MembershipOffering,
    MembershipStatus,
    Product,
    TaxRate,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def normalize_club_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


# ---------------------------------------------------------------------------
# Clubs
# ---------------------------------------------------------------------------


class ClubDirectory:
    """Lookup capability over the current, admin-defined club set.

    Queries the database on every call so club changes made between requests
    apply immediately. Pass a different implementation to the allocation and
    pricing code to substitute the source of truth.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_clubs(self) -> list[Club]:
        result = await self.db.execute(select(Club).order_by(Club.code))
        return list(result.scalars().all())

    async def valid_codes(self) -> list[str]:
        result = await self.db.execute(select(Club.code).order_by(Club.code))
        return list(result.scalars().all())

    async def get_club(self, code: Optional[str]) -> Optional[Club]:
        normalized = normalize_club_code(code)
        if not normalized:
            return None
        result = await self.db.execute(select(Club).where(Club.code == normalized))
        return result.scalar_one_or_none()

    async def is_valid_club(self, code: Optional[str]) -> bool:
        return await self.get_club(code) is not None

    async def require_club(self, code: Optional[str]) -> Club:
        """Resolve ``code`` (case-insensitive) or raise UnknownClub."""
        club = await self.get_club(code)
        if club is None:
            raise UnknownClub(normalize_club_code(code) or None, await self.valid_codes())
        return club

    async def validate_codes(self, codes: Iterable[str]) -> list[str]:
        """Normalise ``codes``; raise UnknownClub on the first unknown one."""
        valid = set(await self.valid_codes())
        normalized: list[str] = []
        for code in codes:
            candidate = normalize_club_code(code)
            if candidate not in valid:
                raise UnknownClub(candidate or None, valid)
            if candidate not in normalized:
                normalized.append(candidate)
        return normalized

    async def active_member_ids(self, club: Club) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(ClubMembership.member_id)
            .where(
                ClubMembership.club_id == club.id,
                ClubMembership.status == MembershipStatus.ACTIVE,
            )
            .order_by(ClubMembership.created_at)
        )
        return list(result.scalars().all())

    async def member_club_codes(self, member_id: uuid.UUID) -> list[str]:
        result = await self.db.execute(
            select(Club.code)
            .join(ClubMembership, ClubMembership.club_id == Club.id)
            .where(
                ClubMembership.member_id == member_id,
                ClubMembership.status == MembershipStatus.ACTIVE,
            )
            .order_by(Club.code)
        )
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


async def get_member(db: AsyncSession, member_id: uuid.UUID) -> Optional[Member]:
    return await db.get(Member, member_id)


async def find_missing_member_ids(
    db: AsyncSession, member_ids: Sequence[uuid.UUID]
) -> list[uuid.UUID]:
    """Return the ids in ``member_ids`` that have no Member row."""
    if not member_ids:
        return []
    result = await db.execute(select(Member.id).where(Member.id.in_(member_ids)))
    found = set(result.scalars().all())
    return [member_id for member_id in member_ids if member_id not in found]


# ---------------------------------------------------------------------------
# Products & tax
# ---------------------------------------------------------------------------


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    """Load a product with its club prices. Raises ProductNotFound."""
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.club_prices))
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise ProductNotFound(product_id)
    return product


async def load_products(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    """Load existing products by id; missing ids are simply absent."""
    ids = list(set(product_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(ids))
        .options(selectinload(Product.club_prices))
    )
    return {product.id: product for product in result.scalars().all()}


async def load_tax_rates(
    db: AsyncSession, tax_rate_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, TaxRate]:
    ids = [rate_id for rate_id in set(tax_rate_ids) if rate_id is not None]
    if not ids:
        return {}
    result = await db.execute(select(TaxRate).where(TaxRate.id.in_(ids)))
    return {rate.id: rate for rate in result.scalars().all()}


async def get_membership_offering(
    db: AsyncSession, offering_id: uuid.UUID
) -> Optional[MembershipOffering]:
    return await db.get(MembershipOffering, offering_id)


# ---------------------------------------------------------------------------
# Inventory (atomic)
# ---------------------------------------------------------------------------


async def reserve_inventory(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> bool:
    """Check-and-decrement stock in one conditional UPDATE.

    Returns False, changing nothing, when stock is below ``quantity``. Does not
    commit; the caller owns the transaction.
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.inventory_quantity >= quantity)
        .values(inventory_quantity=Product.inventory_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    reserved = result.rowcount == 1
    if reserved:
        logger.info("Reserved %d units of product %s", quantity, product_id)
    return reserved


async def current_inventory(db: AsyncSession, product_id: uuid.UUID) -> int:
    """Fresh read of stock, bypassing any stale instance in the session."""
    result = await db.execute(
        select(Product.inventory_quantity).where(Product.id == product_id)
    )
    return result.scalar_one_or_none() or 0
