"""Initial ledger schema: customer types, customers, products, settings, transactions

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01

Money columns are integer cents; percentages are integer basis points.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "customer_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("discount_percent_bps", sa.Integer(), nullable=True),
        sa.Column("discount_flat_cents", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_customer_types_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.String(4), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_percent_bps", sa.Integer(), nullable=True),
        sa.Column("discount_flat_cents", sa.Integer(), nullable=True),
        sa.Column("type_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["type_id"], ["customer_types.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", name="uq_customers_customer_id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_customers_type_id", ["type_id"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("discount_percent_bps", sa.Integer(), nullable=True),
        sa.Column("discount_flat_cents", sa.Integer(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("price_cents >= 0", name="ck_products_price_nonnegative"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", name="uq_products_product_id"),
        sa.UniqueConstraint("barcode", name="uq_products_barcode"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_products_barcode", ["barcode"], unique=False)
        batch_op.create_index("ix_products_active", ["active"], unique=False)

    op.create_table(
        "app_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("brand_name", sa.String(128), nullable=True),
        sa.Column("global_discount_percent_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("global_discount_flat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(4), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("product_price_cents", sa.Integer(), nullable=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("balance_after_cents", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("voided", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("void_note", sa.Text(), nullable=True),
        sa.Column("edit_parent_transaction_id", sa.String(64), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("staff_id", sa.String(64), nullable=True),
        sa.CheckConstraint(
            "type IN ('purchase', 'deposit', 'withdrawal', 'adjustment')",
            name="ck_transactions_type",
        ),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.customer_id"]),
        sa.ForeignKeyConstraint(["edit_parent_transaction_id"], ["transactions.transaction_id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", name="uq_transactions_transaction_id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index("ix_transactions_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_transactions_type", ["type"], unique=False)
        batch_op.create_index("ix_transactions_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_transactions_voided", ["voided"], unique=False)
        batch_op.create_index("ix_transactions_edit_parent_transaction_id", ["edit_parent_transaction_id"], unique=False)
        batch_op.create_index("ix_transactions_timestamp", ["timestamp"], unique=False)
        batch_op.create_index("ix_transactions_customer_timestamp", ["customer_id", "timestamp"], unique=False)


def downgrade():
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.drop_index("ix_transactions_customer_timestamp")
        batch_op.drop_index("ix_transactions_timestamp")
        batch_op.drop_index("ix_transactions_edit_parent_transaction_id")
        batch_op.drop_index("ix_transactions_voided")
        batch_op.drop_index("ix_transactions_product_id")
        batch_op.drop_index("ix_transactions_type")
        batch_op.drop_index("ix_transactions_customer_id")
    op.drop_table("transactions")

    op.drop_table("app_settings")

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.drop_index("ix_products_active")
        batch_op.drop_index("ix_products_barcode")
        batch_op.drop_index("ix_products_product_id")
    op.drop_table("products")

    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.drop_index("ix_customers_type_id")
        batch_op.drop_index("ix_customers_customer_id")
    op.drop_table("customers")

    op.drop_table("customer_types")
