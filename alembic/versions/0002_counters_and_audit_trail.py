"""Add named sequence counters and the append-only audit trail."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "0002_counters_and_audit_trail"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None

sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Create counters and audit_trail with their lookup indexes."""

    op.create_table(
        "counters",
        sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.UniqueConstraint("name", name="uq_counters_name"),
    )

    op.create_table(
        "audit_trail",
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
    op.create_index(
        "ix_audit_trail_entity",
        "audit_trail",
        ["entity_type", "entity_id", "changed_at"],
        unique=False,
    )
    op.create_index(
        "ix_audit_trail_operation",
        "audit_trail",
        ["operation", "changed_at"],
        unique=False,
    )
    op.create_index(
        "ix_audit_trail_changed_by",
        "audit_trail",
        ["changed_by", "changed_at"],
        unique=False,
    )
    op.create_index("ix_audit_trail_changed_at", "audit_trail", ["changed_at"], unique=False)


def downgrade() -> None:
    """Drop audit_trail and counters."""

    op.drop_index("ix_audit_trail_changed_at", table_name="audit_trail")
    op.drop_index("ix_audit_trail_changed_by", table_name="audit_trail")
    op.drop_index("ix_audit_trail_operation", table_name="audit_trail")
    op.drop_index("ix_audit_trail_entity", table_name="audit_trail")
    op.drop_table("audit_trail")
    op.drop_table("counters")
