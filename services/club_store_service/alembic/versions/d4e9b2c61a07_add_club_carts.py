"""add_club_carts

Revision ID: d4e9b2c61a07
Revises: c7f1a0e2b301
Create Date: 2026-10-19 09:40:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "d4e9b2c61a07"
down_revision = "c7f1a0e2b301"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "club_carts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False, unique=True),
        sa.Column("owner_user_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "club_cart_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "cart_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_carts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "product_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("club_products.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("cart_id", "product_id", name="uq_cart_product"),
        sa.CheckConstraint(
            "quantity >= 1 AND quantity <= 99", name="cart_quantity_range"
        ),
    )
    op.create_index("ix_club_cart_items_cart_id", "club_cart_items", ["cart_id"])


def downgrade() -> None:
    op.drop_index("ix_club_cart_items_cart_id", table_name="club_cart_items")
    op.drop_table("club_cart_items")
    op.drop_table("club_carts")
