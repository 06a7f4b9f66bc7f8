"""Initial migration — create users, listings and media_assets.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── users ──
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_name", "users", ["name"])

    # ── listings ──
    op.create_table(
        "listings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("price", sa.Numeric(14, 2), nullable=True),
        sa.Column("category", sa.String(20), nullable=False, server_default="sale"),
        sa.Column("house_type", sa.String(20), nullable=True),
        sa.Column("bedrooms", sa.Integer, nullable=True),
        sa.Column("bathrooms", sa.Integer, nullable=True),
        sa.Column("area_sq_ft", sa.Float, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("image_url", sa.String(2048), nullable=True),
        sa.Column("facilities", JSONB, nullable=False, server_default="[]"),
        sa.Column("house_rules", sa.Text, nullable=True),
        sa.Column("owner_name", sa.String(255), nullable=True),
        sa.Column("owner_phone", sa.String(50), nullable=True),
        sa.Column("owner_email", sa.String(320), nullable=True),
        sa.Column("agent_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("drive_link", sa.String(2048), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("admin_decision_message", sa.Text, nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'available', 'rejected')", name="ck_listings_status"),
    )
    op.create_index("ix_listings_status", "listings", ["status"])
    op.create_index("ix_listings_category", "listings", ["category"])
    op.create_index("ix_listings_price", "listings", ["price"])
    op.create_index("ix_listings_owner_email", "listings", ["owner_email"])
    op.create_index("ix_listings_agent_id", "listings", ["agent_id"])
    op.create_index("ix_listings_created_at", "listings", ["created_at"])

    # ── media_assets ──
    op.create_table(
        "media_assets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("listing_id", UUID(as_uuid=True), sa.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_path", sa.String(2048), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=True),
        sa.Column("content_type", sa.String(100), nullable=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_media_assets_listing_id", "media_assets", ["listing_id"])


def downgrade() -> None:
    op.drop_table("media_assets")
    op.drop_table("listings")
    op.drop_table("users")
