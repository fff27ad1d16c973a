"""Tip pool: tips collected at checkout and manager withdrawals."""

from dataclasses import dataclass
from typing import Optional

from libs.common.currency import format_cents
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.config import dialect_insert
from services.club_store_service.errors import (
    InsufficientTipBalance,
    InvalidQuantity,
    StorageFailure,
)
from services.club_store_service.models import TIP_POOL_ID, TipPool, TipWithdrawal
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TipPoolView:
    available_cents: int
    withdrawals: list[TipWithdrawal]


async def _available_cents(db: AsyncSession) -> int:
    result = await db.execute(
        select(TipPool.available_cents).where(TipPool.id == TIP_POOL_ID)
    )
    return result.scalar_one_or_none() or 0


async def credit_tips(db: AsyncSession, amount_cents: int) -> None:
    """Add tips to the pool with an atomic upsert. Does not commit.

    The pool row is seeded by the migration; the upsert also creates it on a
    bare schema without racing a concurrent first credit.
    """
    if amount_cents <= 0:
        return
    insert = dialect_insert(db)
    stmt = insert(TipPool).values(
        id=TIP_POOL_ID, available_cents=amount_cents, updated_at=utc_now()
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[TipPool.id],
        set_={
            "available_cents": TipPool.available_cents + stmt.excluded.available_cents,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    await db.execute(stmt)
    logger.info("Credited %s to tip pool", format_cents(amount_cents))


async def get_tip_pool(db: AsyncSession) -> TipPoolView:
    result = await db.execute(
        select(TipWithdrawal).order_by(TipWithdrawal.withdrawn_at.desc())
    )
    return TipPoolView(
        available_cents=await _available_cents(db),
        withdrawals=list(result.scalars().all()),
    )


async def withdraw_tips(
    db: AsyncSession,
    *,
    amount_cents: int,
    note: Optional[str] = None,
    withdrawn_by: Optional[str] = None,
) -> tuple[TipWithdrawal, int]:
    """Pull tips out of the pool. Returns the withdrawal and the new balance."""
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidQuantity(
            "amount_cents must be a positive integer", amount_cents=amount_cents
        )

    try:
        result = await db.execute(
            update(TipPool)
            .where(TipPool.id == TIP_POOL_ID, TipPool.available_cents >= amount_cents)
            .values(available_cents=TipPool.available_cents - amount_cents)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            available = await _available_cents(db)
            await db.rollback()
            raise InsufficientTipBalance(amount_cents, available)

        withdrawal = TipWithdrawal(
            amount_cents=amount_cents,
            note=(note or "").strip() or None,
            withdrawn_by=withdrawn_by,
        )
        db.add(withdrawal)
        await db.flush()
        balance = await _available_cents(db)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Tip withdrawal of %d cents failed in storage", amount_cents)
        raise StorageFailure("Tip withdrawal could not be saved") from exc

    logger.info(
        "Withdrew %s from tip pool by %s, %s remaining",
        format_cents(amount_cents),
        withdrawn_by,
        format_cents(balance),
    )
    return withdrawal, balance
