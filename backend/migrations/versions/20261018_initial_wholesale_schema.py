"""Initial wholesale schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_username", ["username"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)
        batch_op.create_index("ix_session_tokens_expires_at", ["expires_at"], unique=False)
        batch_op.create_index("ix_session_tokens_is_revoked", ["is_revoked"], unique=False)
        batch_op.create_index("ix_session_tokens_user_active", ["user_id", "is_revoked"], unique=False)

    op.create_table(
        "product_templates",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("strain_type", sa.String(16), nullable=False),
        sa.Column("product_category", sa.String(32), nullable=False),
        sa.Column("unit_of_measure", sa.String(16), nullable=False),
        sa.Column("supplier", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("product_templates", schema=None) as batch_op:
        batch_op.create_index("ix_product_templates_name", ["name"], unique=False)
        batch_op.create_index(
            "ix_product_templates_category_active", ["product_category", "is_active"], unique=False
        )

    op.create_table(
        "product_batches",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("template_id", sa.String(64), nullable=False),
        sa.Column("metrc_package_id", sa.String(64), nullable=False),
        sa.Column("thc_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("cbd_percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("wholesale_price_cents", sa.Integer(), nullable=False),
        sa.Column("current_stock_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("production_date", sa.Date(), nullable=True),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("current_stock_quantity >= 0", name="ck_product_batches_stock_nonneg"),
        sa.CheckConstraint("wholesale_price_cents >= 0", name="ck_product_batches_price_nonneg"),
        sa.ForeignKeyConstraint(["template_id"], ["product_templates.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("metrc_package_id", name="uq_product_batches_metrc"),
    )
    with op.batch_alter_table("product_batches", schema=None) as batch_op:
        batch_op.create_index("ix_product_batches_template_id", ["template_id"], unique=False)
        batch_op.create_index(
            "ix_product_batches_template_active", ["template_id", "is_active"], unique=False
        )

    op.create_table(
        "dispensaries",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("license_number", sa.String(64), nullable=False),
        sa.Column("contact_person", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(32), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("license_number", name="uq_dispensaries_license"),
    )
    with op.batch_alter_table("dispensaries", schema=None) as batch_op:
        batch_op.create_index("ix_dispensaries_name", ["name"], unique=False)

    op.create_table(
        "wholesale_orders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("ordered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dispensary_id", sa.String(64), nullable=False),
        sa.Column("sales_associate_id", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("payment_terms", sa.String(16), nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="Pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("shipment_date", sa.Date(), nullable=True),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("metrc_manifest_id", sa.String(64), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["dispensary_id"], ["dispensaries.id"]),
        sa.ForeignKeyConstraint(["sales_associate_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("wholesale_orders", schema=None) as batch_op:
        batch_op.create_index("ix_wholesale_orders_ordered_at", ["ordered_at"], unique=False)
        batch_op.create_index("ix_wholesale_orders_dispensary_id", ["dispensary_id"], unique=False)
        batch_op.create_index("ix_wholesale_orders_sales_associate_id", ["sales_associate_id"], unique=False)
        batch_op.create_index("ix_wholesale_orders_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_wholesale_orders_metrc_manifest_id", ["metrc_manifest_id"], unique=False)
        batch_op.create_index(
            "ix_wholesale_orders_dispensary_date", ["dispensary_id", "ordered_at"], unique=False
        )
        batch_op.create_index(
            "ix_wholesale_orders_status_date", ["payment_status", "ordered_at"], unique=False
        )

    op.create_table(
        "wholesale_order_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.String(64), nullable=False),
        sa.Column("batch_id", sa.String(64), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("batch_metrc_package_id", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("thc_percentage_at_sale", sa.Float(), nullable=True),
        sa.Column("cbd_percentage_at_sale", sa.Float(), nullable=True),
        sa.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        sa.ForeignKeyConstraint(["order_id"], ["wholesale_orders.id"]),
        sa.ForeignKeyConstraint(["template_id"], ["product_templates.id"]),
        sa.ForeignKeyConstraint(["batch_id"], ["product_batches.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "line_number", name="uq_order_lines_order_line"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("wholesale_order_lines", schema=None) as batch_op:
        batch_op.create_index("ix_wholesale_order_lines_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_wholesale_order_lines_template_id", ["template_id"], unique=False)
        batch_op.create_index("ix_wholesale_order_lines_batch_id", ["batch_id"], unique=False)


def downgrade():
    op.drop_table("wholesale_order_lines")
    op.drop_table("wholesale_orders")
    op.drop_table("dispensaries")
    op.drop_table("product_batches")
    op.drop_table("product_templates")
    op.drop_table("session_tokens")
    op.drop_table("users")
