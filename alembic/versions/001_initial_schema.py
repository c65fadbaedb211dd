"""Initial asset back office schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_identifier", sa.String(200), nullable=True),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Reference data
    op.create_table(
        "categories",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title", name="uq_categories_title"),
    )
    op.create_table(
        "brands",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title", name="uq_brands_title"),
    )
    op.create_table(
        "units",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("abbreviation", sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title", name="uq_units_title"),
    )

    # Custodians
    op.create_table(
        "warehouses",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("location", sa.String(300), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("warehouse_type", sa.String(50), nullable=True),
        sa.Column("stock_qty", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title", name="uq_warehouses_title"),
        sa.CheckConstraint("stock_qty >= 0", name="ck_warehouses_stock_qty_non_negative"),
    )
    op.create_table(
        "people",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("topology", sa.String(100), nullable=True),
        sa.Column("aow", sa.String(100), nullable=True),
        sa.Column("contract_end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("stock_qty", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("stock_qty >= 0", name="ck_people_stock_qty_non_negative"),
    )
    op.create_index("ix_people_title", "people", ["title"])
    op.create_index("ix_people_email", "people", ["email"])
    op.create_index("ix_people_status", "people", ["status"])

    # Procurement
    op.create_table(
        "suppliers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("contact_person", sa.String(200), nullable=True),
        sa.Column("supplier_code", sa.String(50), nullable=True),
        sa.Column("tax_id", sa.String(50), nullable=True),
        sa.Column("payment_terms", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("supplier_code", name="uq_suppliers_supplier_code"),
    )
    op.create_index("ix_suppliers_title", "suppliers", ["title"])

    op.create_table(
        "purchases",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("products", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("supplier_id", sa.BigInteger(), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
    )
    op.create_index("ix_purchases_supplier_id", "purchases", ["supplier_id"])
    op.create_index("ix_purchases_reference_number", "purchases", ["reference_number"])
    op.create_index("ix_purchases_status", "purchases", ["status"])

    # Items
    op.create_table(
        "items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category_id", sa.BigInteger(), nullable=False),
        sa.Column("brand_id", sa.BigInteger(), nullable=True),
        sa.Column("unit_id", sa.BigInteger(), nullable=True),
        sa.Column("supplier_id", sa.BigInteger(), nullable=True),
        sa.Column("warehouse_id", sa.BigInteger(), nullable=True),
        sa.Column("assigned_to_person_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "current_location_type", sa.String(20), nullable=False, server_default="warehouse"
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("serial_number", sa.String(100), nullable=True),
        sa.Column("barcode", sa.String(100), nullable=True),
        sa.Column("asset_tag", sa.String(100), nullable=True),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("buying_price", sa.Numeric(15, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.ForeignKeyConstraint(["brand_id"], ["brands.id"]),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["assigned_to_person_id"], ["people.id"]),
        sa.CheckConstraint("quantity >= 1", name="ck_items_quantity_positive"),
        sa.CheckConstraint(
            "current_location_type IN ('warehouse', 'person')",
            name="ck_items_location_type",
        ),
    )
    op.create_index("ix_items_title", "items", ["title"])
    op.create_index("ix_items_category_id", "items", ["category_id"])
    op.create_index("ix_items_warehouse_id", "items", ["warehouse_id"])
    op.create_index("ix_items_assigned_to_person_id", "items", ["assigned_to_person_id"])
    op.create_index("ix_items_current_location_type", "items", ["current_location_type"])
    op.create_index("ix_items_serial_number", "items", ["serial_number"])
    op.create_index("ix_items_asset_tag", "items", ["asset_tag"])

    # Custody periods
    op.create_table(
        "transfer_stock_adjustments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("item_id", sa.BigInteger(), nullable=False),
        sa.Column("person_id", sa.BigInteger(), nullable=False),
        sa.Column("from_person_id", sa.BigInteger(), nullable=True),
        sa.Column("giving_warehouse_id", sa.BigInteger(), nullable=True),
        sa.Column("returned_to_warehouse_id", sa.BigInteger(), nullable=True),
        sa.Column("transfer_stock_qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.BigInteger(), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["from_person_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["giving_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["returned_to_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
    )
    op.create_index(
        "ix_transfer_stock_adjustments_item_id", "transfer_stock_adjustments", ["item_id"]
    )
    op.create_index(
        "ix_transfer_stock_adjustments_person_id", "transfer_stock_adjustments", ["person_id"]
    )
    op.create_index(
        "ix_transfer_stock_adjustments_status", "transfer_stock_adjustments", ["status"]
    )

    # ICT access
    op.create_table(
        "access_categories",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title", name="uq_access_categories_title"),
    )
    op.create_table(
        "access_items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category_id", sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["access_categories.id"]),
    )
    op.create_index("ix_access_items_name", "access_items", ["name"])
    op.create_index("ix_access_items_category_id", "access_items", ["category_id"])

    op.create_table(
        "employee_accesses",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("person_id", sa.BigInteger(), nullable=False),
        sa.Column("access_item_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column(
            "granted_date",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("revoked_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("granted_by", sa.String(200), nullable=True),
        sa.Column("revoked_by", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
        sa.ForeignKeyConstraint(["access_item_id"], ["access_items.id"]),
    )
    op.create_index("ix_employee_accesses_person_id", "employee_accesses", ["person_id"])
    op.create_index(
        "ix_employee_accesses_access_item_id", "employee_accesses", ["access_item_id"]
    )
    op.create_index("ix_employee_accesses_status", "employee_accesses", ["status"])
    op.create_index("ix_employee_accesses_granted_date", "employee_accesses", ["granted_date"])
    # At most one active grant per (person, access item)
    op.create_index(
        "uq_employee_accesses_active_grant",
        "employee_accesses",
        ["person_id", "access_item_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # Demobilization
    op.create_table(
        "demob_documents",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("person_id", sa.BigInteger(), nullable=False),
        sa.Column("performed_by", sa.String(200), nullable=False),
        sa.Column("performed_by_email", sa.String(255), nullable=True),
        sa.Column("items_returned", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("accesses_revoked", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("signed_document_url", sa.String(500), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"]),
    )
    op.create_index("ix_demob_documents_person_id", "demob_documents", ["person_id"])


def downgrade() -> None:
    op.drop_table("demob_documents")
    op.drop_index("uq_employee_accesses_active_grant", table_name="employee_accesses")
    op.drop_table("employee_accesses")
    op.drop_table("access_items")
    op.drop_table("access_categories")
    op.drop_table("transfer_stock_adjustments")
    op.drop_table("items")
    op.drop_table("purchases")
    op.drop_table("suppliers")
    op.drop_table("people")
    op.drop_table("warehouses")
    op.drop_table("units")
    op.drop_table("brands")
    op.drop_table("categories")
    op.drop_table("audit_logs")
    op.drop_table("users")
