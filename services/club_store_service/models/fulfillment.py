"""Allocation audit rows and pickup entitlements."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.club_store_service.models.catalog import JSONType
from services.club_store_service.models.enums import (
    AllocationTargetType,
    EntitlementSource,
    EntitlementStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ALLOCATIONS
# ============================================================================


class Allocation(Base):
    """Immutable record of an admin bulk grant of a product."""

    __tablename__ = "club_allocations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    target_type: Mapped[AllocationTargetType] = mapped_column(
        SAEnum(
            AllocationTargetType,
            values_callable=enum_values,
            name="club_allocation_target_type_enum",
        ),
        nullable=False,
    )
    club_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    # Resolved member ids (as strings) at the time of the grant
    member_ids: Mapped[list] = mapped_column(JSONType, nullable=False)

    quantity_per_person: Mapped[int] = mapped_column(Integer, nullable=False)
    pull_from_inventory: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity_per_person >= 1", name="positive_quantity_per_person"),
        CheckConstraint("total_quantity >= 1", name="positive_total_quantity"),
    )

    entitlements = relationship("Entitlement", back_populates="allocation")

    def __repr__(self):
        return f"<Allocation product={self.product_id} total={self.total_quantity}>"


# ============================================================================
# ENTITLEMENTS
# ============================================================================


class Entitlement(Base):
    """What a member is owed of a product, and where it is in the pickup flow.

    Status moves not_ready -> ready_for_pickup -> picked_up, with picked_up ->
    ready_for_pickup as the only backwards edge. Rows are never deleted.
    """

    __tablename__ = "club_entitlements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    allocation_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("club_allocations.id", ondelete="SET NULL"),
        nullable=True,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[EntitlementStatus] = mapped_column(
        SAEnum(
            EntitlementStatus,
            values_callable=enum_values,
            name="club_entitlement_status_enum",
        ),
        nullable=False,
    )
    source: Mapped[EntitlementSource] = mapped_column(
        SAEnum(
            EntitlementSource,
            values_callable=enum_values,
            name="club_entitlement_source_enum",
        ),
        nullable=False,
    )

    release_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    picked_up_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="positive_entitlement_quantity"),
        Index("ix_club_entitlements_member_status", "member_id", "status"),
        Index("ix_club_entitlements_status_release", "status", "release_at"),
    )

    allocation = relationship("Allocation", back_populates="entitlements")
    member = relationship("Member")
    product = relationship("Product")

    def __repr__(self):
        return f"<Entitlement {self.id} {self.status} qty={self.quantity}>"
