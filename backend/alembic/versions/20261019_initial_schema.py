"""Initial freightdesk schema

Revision ID: 20261019_initial_schema
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "shipping_plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "shipping_rates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("origin", sa.String(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("shipping_plan_id", sa.Integer(), sa.ForeignKey("shipping_plans.id"), nullable=True),
        sa.Column("minimum_weight", sa.Numeric(10, 3), nullable=False),
        sa.Column("minimum_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("additional_price_per_kg", sa.Numeric(10, 4), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("origin", "destination", "shipping_plan_id", name="uq_shipping_rates_route_plan"),
    )
    op.create_index("ix_shipping_rates_origin", "shipping_rates", ["origin"])
    op.create_index("ix_shipping_rates_destination", "shipping_rates", ["destination"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_name", sa.String(), nullable=False, unique=True),
        sa.Column("role", sa.String(length=6), nullable=False, server_default="client"),
        sa.Column("shipping_plan_id", sa.Integer(), sa.ForeignKey("shipping_plans.id"), nullable=True),
        sa.Column("contact_name", sa.String(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(length=10), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "revoked_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("jti", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_revoked_tokens_jti", "revoked_tokens", ["jti"], unique=True)

    op.create_table(
        "manifest_infos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("awb_no", sa.String(), nullable=False),
        sa.Column("from", sa.String(), nullable=False),
        sa.Column("to", sa.String(), nullable=False),
        sa.Column("flt", sa.String(), nullable=True),
        sa.Column("manifest_no", sa.String(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_manifest_infos_manifest_no", "manifest_infos", ["manifest_no"], unique=True)

    op.create_table(
        "manifest_lists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "manifest_info_id",
            sa.Integer(),
            sa.ForeignKey("manifest_infos.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("consignor_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("consignee_name", sa.String(), nullable=False),
        sa.Column("cn_no", sa.String(), nullable=False),
        sa.Column("pcs", sa.Integer(), nullable=False),
        sa.Column("kg", sa.Integer(), nullable=False),
        sa.Column("gram", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(5, 2), nullable=True),
        sa.Column("origin", sa.String(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("remarks", sa.String(), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_manifest_lists_cn_no", "manifest_lists", ["cn_no"])


def downgrade():
    op.drop_index("ix_manifest_lists_cn_no", table_name="manifest_lists")
    op.drop_table("manifest_lists")
    op.drop_index("ix_manifest_infos_manifest_no", table_name="manifest_infos")
    op.drop_table("manifest_infos")
    op.drop_index("ix_revoked_tokens_jti", table_name="revoked_tokens")
    op.drop_table("revoked_tokens")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("clients")
    op.drop_index("ix_shipping_rates_destination", table_name="shipping_rates")
    op.drop_index("ix_shipping_rates_origin", table_name="shipping_rates")
    op.drop_table("shipping_rates")
    op.drop_table("shipping_plans")
