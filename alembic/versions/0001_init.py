"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _base_columns():
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("firm_name", sa.String(length=200), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "customers",
        *_base_columns(),
        sa.Column("cust_id", sa.String(length=10), nullable=False, unique=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("deal_type", sa.String(length=30), nullable=True),
        sa.Column("req", sa.String(length=500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("bhk", sa.String(length=30), nullable=True),
        sa.Column("typology", sa.String(length=60), nullable=True),
        sa.Column("property_types", sa.JSON(), nullable=False),
        sa.Column("budget", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="New"),
    )
    op.create_index("ix_customers_cust_id", "customers", ["cust_id"])
    op.create_index("ix_customers_phone", "customers", ["phone"])
    op.create_index("ix_customers_status", "customers", ["status"])
    op.create_index("ix_customers_created_at", "customers", ["created_at"])

    op.create_table(
        "customer_notes",
        *_base_columns(),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="general"),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("follow_up_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_customer_notes_customer_id", "customer_notes", ["customer_id"])
    op.create_index("ix_customer_notes_follow_up_date", "customer_notes", ["follow_up_date"])
    op.create_index("ix_customer_notes_created_at", "customer_notes", ["created_at"])

    op.create_table(
        "properties",
        *_base_columns(),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("location", sa.String(length=300), nullable=False),
        sa.Column("sqft", sa.Float(), nullable=True),
        sa.Column("carpet_area", sa.Float(), nullable=True),
        sa.Column("built_up_area", sa.Float(), nullable=True),
        sa.Column("unit_configuration", sa.String(length=30), nullable=True),
        sa.Column("floor_number", sa.Integer(), nullable=True),
        sa.Column("total_floors", sa.Integer(), nullable=True),
        sa.Column("facing", sa.String(length=20), nullable=True),
        sa.Column("parking_slots", sa.Integer(), nullable=True),
        sa.Column("amenities", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("customer_cust_id", sa.String(length=10), nullable=True),
        sa.Column("closed_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_properties_type", "properties", ["type"])
    op.create_index("ix_properties_status", "properties", ["status"])
    op.create_index("ix_properties_price", "properties", ["price"])
    op.create_index("ix_properties_customer_cust_id", "properties", ["customer_cust_id"])
    op.create_index("ix_properties_created_at", "properties", ["created_at"])

    op.create_table(
        "tasks",
        *_base_columns(),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False, server_default="Other"),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("customer_cust_id", sa.String(length=10), nullable=True),
    )
    op.create_index("ix_tasks_date", "tasks", ["date"])
    op.create_index("ix_tasks_customer_cust_id", "tasks", ["customer_cust_id"])
    op.create_index("ix_tasks_created_at", "tasks", ["created_at"])


def downgrade():
    op.drop_table("tasks")
    op.drop_table("properties")
    op.drop_table("customer_notes")
    op.drop_table("customers")
    op.drop_table("users")
