"""Catalog facts: clubs, members, memberships, tax rates, products, offerings.

These rows are maintained by admin CRUD outside this service; the core only
reads them, apart from the inventory and ledger counters on Product.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.club_store_service.models.enums import MembershipStatus, enum_values
from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB, "postgresql")

# ============================================================================
# CLUBS & MEMBERS
# ============================================================================


class Club(Base):
    """An admin-defined club (e.g. 'Wood Club', code WOOD)."""

    __tablename__ = "clubs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    memberships = relationship("ClubMembership", back_populates="club")

    def __repr__(self):
        return f"<Club {self.code}>"


class Member(Base):
    """A member account, as far as the store needs to know about it."""

    __tablename__ = "club_members"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    memberships = relationship("ClubMembership", back_populates="member")

    def __repr__(self):
        return f"<Member {self.id}>"


class ClubMembership(Base):
    """Links a member to a club; only active rows count as membership."""

    __tablename__ = "club_memberships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    club_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clubs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[MembershipStatus] = mapped_column(
        SAEnum(
            MembershipStatus,
            values_callable=enum_values,
            name="club_membership_status_enum",
        ),
        default=MembershipStatus.ACTIVE,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        UniqueConstraint("member_id", "club_id", name="uq_club_membership_member_club"),
    )

    member = relationship("Member", back_populates="memberships")
    club = relationship("Club", back_populates="memberships")


# ============================================================================
# TAX & PRODUCTS
# ============================================================================


class TaxRate(Base):
    """Sales tax rate applied per product line."""

    __tablename__ = "tax_rates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rate_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "rate_percent >= 0 AND rate_percent <= 100", name="valid_rate_percent"
        ),
    )

    def __repr__(self):
        return f"<TaxRate {self.name} {self.rate_percent}%>"


class Product(Base):
    """A member-only product, optionally sold as a preorder."""

    __tablename__ = "club_products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    base_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    allowed_club_codes: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False
    )
    tax_rate_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("tax_rates.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Preorder window (release_at may differ from preorder_end_at)
    is_preorder: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    preorder_start_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    preorder_end_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    release_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Stock and fulfillment counters
    inventory_quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    ordered_not_picked_up_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )  # Cumulative: incremented on entitlement creation, never on pickup

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("base_price_cents >= 0", name="non_negative_base_price"),
        CheckConstraint("inventory_quantity >= 0", name="non_negative_inventory"),
        CheckConstraint(
            "ordered_not_picked_up_count >= 0", name="non_negative_ordered_count"
        ),
    )

    # Relationships
    tax_rate = relationship("TaxRate")
    club_prices = relationship(
        "ProductClubPrice",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Product {self.name} inventory={self.inventory_quantity}>"


class ProductClubPrice(Base):
    """Per-club unit price overriding a product's base price."""

    __tablename__ = "club_product_prices"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    club_code: Mapped[str] = mapped_column(String(32), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("product_id", "club_code", name="uq_product_club_price"),
        CheckConstraint("price_cents >= 0", name="non_negative_club_price"),
    )

    product = relationship("Product", back_populates="club_prices")

    def __repr__(self):
        return f"<ProductClubPrice {self.club_code}={self.price_cents}>"


class MembershipOffering(Base):
    """A membership that can be bought alongside products at checkout."""

    __tablename__ = "club_membership_offerings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    club_code: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="non_negative_offering_price"),
    )
