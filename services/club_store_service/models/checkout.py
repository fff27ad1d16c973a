"""Checkout bookkeeping: per-payment tax records and the tip pool."""

import uuid
from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.club_store_service.models.catalog import JSONType
from sqlalchemy import CheckConstraint, Date, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

TIP_POOL_ID = 1


class SalesTaxRecord(Base):
    """Tax collected on one successful payment, grouped by tax rate id."""

    __tablename__ = "club_sales_tax_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    payment_reference: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    member_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), nullable=True
    )
    recorded_on: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    tax_breakdown: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    subtotal_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tip_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<SalesTaxRecord {self.payment_reference} {self.recorded_on}>"


class TipPool(Base):
    """Single-row running balance of tips collected at checkout."""

    __tablename__ = "club_tip_pool"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=TIP_POOL_ID)
    available_cents: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("available_cents >= 0", name="non_negative_tip_pool"),
    )


class TipWithdrawal(Base):
    """A manager pulling tips out of the pool."""

    __tablename__ = "club_tip_withdrawals"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    withdrawn_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    withdrawn_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="positive_tip_withdrawal"),
    )
