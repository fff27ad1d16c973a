"""create_club_store_tables

Revision ID: c7f1a0e2b301
Revises:
Create Date: 2026-03-02 10:15:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "c7f1a0e2b301"
down_revision = None
branch_labels = None
depends_on = None


JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

membership_status_enum = sa.Enum(
    "active", "lapsed", name="club_membership_status_enum"
)
target_type_enum = sa.Enum("club", "members", name="club_allocation_target_type_enum")
entitlement_status_enum = sa.Enum(
    "not_ready",
    "ready_for_pickup",
    "picked_up",
    "expired",
    name="club_entitlement_status_enum",
)
entitlement_source_enum = sa.Enum(
    "allocation", "preorder", "order", name="club_entitlement_source_enum"
)


def upgrade() -> None:
    op.create_table(
        "clubs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "club_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "club_memberships",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_members.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "club_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clubs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", membership_status_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "member_id", "club_id", name="uq_club_membership_member_club"
        ),
    )
    op.create_index(
        "ix_club_memberships_member_id", "club_memberships", ["member_id"]
    )
    op.create_index("ix_club_memberships_club_id", "club_memberships", ["club_id"])

    op.create_table(
        "tax_rates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("rate_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "rate_percent >= 0 AND rate_percent <= 100", name="valid_rate_percent"
        ),
    )
    op.create_table(
        "club_products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("base_price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("allowed_club_codes", JSON_TYPE, nullable=False),
        sa.Column(
            "tax_rate_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("tax_rates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_preorder", sa.Boolean(), nullable=False),
        sa.Column("preorder_start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("preorder_end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("release_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "inventory_quantity", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column(
            "ordered_not_picked_up_count",
            sa.Integer(),
            server_default="0",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("base_price_cents >= 0", name="non_negative_base_price"),
        sa.CheckConstraint("inventory_quantity >= 0", name="non_negative_inventory"),
        sa.CheckConstraint(
            "ordered_not_picked_up_count >= 0", name="non_negative_ordered_count"
        ),
    )
    op.create_table(
        "club_product_prices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("club_code", sa.String(32), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.UniqueConstraint("product_id", "club_code", name="uq_product_club_price"),
        sa.CheckConstraint("price_cents >= 0", name="non_negative_club_price"),
    )
    op.create_table(
        "club_membership_offerings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("club_code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("price_cents >= 0", name="non_negative_offering_price"),
    )

    op.create_table(
        "club_allocations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("target_type", target_type_enum, nullable=False),
        sa.Column("club_code", sa.String(32), nullable=True),
        sa.Column("member_ids", JSON_TYPE, nullable=False),
        sa.Column("quantity_per_person", sa.Integer(), nullable=False),
        sa.Column("pull_from_inventory", sa.Boolean(), nullable=False),
        sa.Column("total_quantity", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "quantity_per_person >= 1", name="positive_quantity_per_person"
        ),
        sa.CheckConstraint("total_quantity >= 1", name="positive_total_quantity"),
    )
    op.create_index(
        "ix_club_allocations_product_id", "club_allocations", ["product_id"]
    )

    op.create_table(
        "club_entitlements",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_members.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "allocation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_allocations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", entitlement_status_enum, nullable=False),
        sa.Column("source", entitlement_source_enum, nullable=False),
        sa.Column("release_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity >= 1", name="positive_entitlement_quantity"),
    )
    op.create_index(
        "ix_club_entitlements_member_status",
        "club_entitlements",
        ["member_id", "status"],
    )
    op.create_index(
        "ix_club_entitlements_status_release",
        "club_entitlements",
        ["status", "release_at"],
    )

    op.create_table(
        "club_sales_tax_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("payment_reference", sa.String(255), nullable=False, unique=True),
        sa.Column("member_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("recorded_on", sa.Date(), nullable=False),
        sa.Column("tax_breakdown", JSON_TYPE, nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("tip_cents", sa.Integer(), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_club_sales_tax_records_recorded_on",
        "club_sales_tax_records",
        ["recorded_on"],
    )
    op.create_table(
        "club_tip_pool",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "available_cents", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("available_cents >= 0", name="non_negative_tip_pool"),
    )
    # Single running-balance row; credits are pure increments against it.
    op.execute("INSERT INTO club_tip_pool (id, available_cents) VALUES (1, 0)")
    op.create_table(
        "club_tip_withdrawals",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("withdrawn_by", sa.String(255), nullable=True),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount_cents > 0", name="positive_tip_withdrawal"),
    )


def downgrade() -> None:
    op.drop_table("club_tip_withdrawals")
    op.drop_table("club_tip_pool")
    op.drop_index(
        "ix_club_sales_tax_records_recorded_on", table_name="club_sales_tax_records"
    )
    op.drop_table("club_sales_tax_records")
    op.drop_index("ix_club_entitlements_status_release", table_name="club_entitlements")
    op.drop_index("ix_club_entitlements_member_status", table_name="club_entitlements")
    op.drop_table("club_entitlements")
    op.drop_index("ix_club_allocations_product_id", table_name="club_allocations")
    op.drop_table("club_allocations")
    op.drop_table("club_membership_offerings")
    op.drop_table("club_product_prices")
    op.drop_table("club_products")
    op.drop_table("tax_rates")
    op.drop_index("ix_club_memberships_club_id", table_name="club_memberships")
    op.drop_index("ix_club_memberships_member_id", table_name="club_memberships")
    op.drop_table("club_memberships")
    op.drop_table("club_members")
    op.drop_table("clubs")

    bind = op.get_bind()
    for enum_type in (
        entitlement_source_enum,
        entitlement_status_enum,
        target_type_enum,
        membership_status_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
