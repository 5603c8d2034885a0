"""SQLAlchemy metadata definitions for clinic back-office tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("email", sa.Text(), nullable=False),
    sa.Column("display_name", sa.Text(), nullable=True),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("email", name="uq_users_email"),
)

customers = sa.Table(
    "customers",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("first_name", sa.String(100), nullable=False),
    sa.Column("last_name", sa.String(100), nullable=True),
    sa.Column("full_name", sa.String(255), nullable=True),
    sa.Column("tax_id", sa.String(20), nullable=True),
    sa.Column("email", sa.String(180), nullable=True),
    sa.Column("phone", sa.String(50), nullable=True),
    sa.Column("billing_address", sa.Text(), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    sa.UniqueConstraint("tax_id", name="uq_customers_tax_id"),
)
sa.Index("ix_customers_full_name", customers.c.full_name)

patients = sa.Table(
    "patients",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("first_name", sa.String(50), nullable=False),
    sa.Column("last_name", sa.String(100), nullable=True),
    sa.Column("full_name", sa.String(150), nullable=False),
    sa.Column("date_of_birth", sa.Date(), nullable=True),
    sa.Column("tax_id", sa.String(15), nullable=True),
    sa.Column("phone", sa.String(50), nullable=True),
    sa.Column("email", sa.String(100), nullable=True),
    sa.Column("address", sa.String(250), nullable=True),
    sa.Column("notes", sa.String(250), nullable=True),
    sa.Column("allergies", sa.String(250), nullable=True),
    sa.Column("medication", sa.String(250), nullable=True),
    sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
    sa.Column("customer_id", sqlite_bigint, sa.ForeignKey("customers.id"), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.CheckConstraint(
        "status IN ('active', 'discharged', 'disabled')",
        name="ck_patients_status",
    ),
)
sa.Index("ix_patients_full_name", patients.c.full_name)

invoices = sa.Table(
    "invoices",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("number", sa.String(20), nullable=False),
    sa.Column("date", sa.DateTime(timezone=True), nullable=False),
    sa.Column("amount", sa.Numeric(12, 2), nullable=False),
    sa.Column("currency", sa.String(3), nullable=False),
    sa.Column("full_name", sa.String(50), nullable=False),
    sa.Column("phone", sa.String(50), nullable=True),
    sa.Column("address", sa.String(250), nullable=True),
    sa.Column("email", sa.String(100), nullable=True),
    sa.Column("tax_id", sa.String(15), nullable=True),
    sa.Column("customer_id", sqlite_bigint, sa.ForeignKey("customers.id"), nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.UniqueConstraint("number", name="uq_invoices_number"),
)
sa.Index("ix_invoices_date", invoices.c.date)

invoice_lines = sa.Table(
    "invoice_lines",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column(
        "invoice_id",
        sqlite_bigint,
        sa.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("concept", sa.String(250), nullable=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("quantity", sa.Integer(), nullable=False),
    sa.Column("price", sa.Numeric(12, 2), nullable=False),
    sa.Column("amount", sa.Numeric(12, 2), nullable=False),
    sa.CheckConstraint("quantity > 0", name="ck_invoice_lines_quantity_positive"),
)
sa.Index("ix_invoice_lines_invoice_id", invoice_lines.c.invoice_id)

counters = sa.Table(
    "counters",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(50), nullable=False),
    sa.Column("value", sa.Text(), nullable=False),
    sa.UniqueConstraint("name", name="uq_counters_name"),
)

audit_trail = sa.Table(
    "audit_trail",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("entity_type", sa.String(100), nullable=False),
    sa.Column("entity_id", sa.String(100), nullable=False),
    sa.Column("operation", sa.String(20), nullable=False),
    sa.Column("changes", sa.JSON(), nullable=False),
    sa.Column(
        "changed_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "changed_by",
        sa.Uuid(),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    ),
    sa.Column("ip_address", sa.String(45), nullable=True),
    sa.Column("user_agent", sa.Text(), nullable=True),
    sa.CheckConstraint(
        "operation IN ('created', 'updated', 'deleted')",
        name="ck_audit_trail_operation",
    ),
)
sa.Index(
    "ix_audit_trail_entity",
    audit_trail.c.entity_type,
    audit_trail.c.entity_id,
    audit_trail.c.changed_at,
)
sa.Index("ix_audit_trail_operation", audit_trail.c.operation, audit_trail.c.changed_at)
sa.Index("ix_audit_trail_changed_by", audit_trail.c.changed_by, audit_trail.c.changed_at)
sa.Index("ix_audit_trail_changed_at", audit_trail.c.changed_at)
