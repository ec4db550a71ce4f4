"""Initial schema: hierarchy, categories, roles, users, data entries, history, notifications

Revision ID: 0001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    """Create all core tables."""

    # --- regions / sectors / schools ---
    op.create_table(
        "regions",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_regions"),
        sa.UniqueConstraint("name", name="uq_regions_name"),
    )

    op.create_table(
        "sectors",
        sa.Column("id", UUID, nullable=False),
        sa.Column("region_id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_sectors"),
        sa.ForeignKeyConstraint(["region_id"], ["regions.id"], name="fk_sectors_region_id_regions"),
    )
    op.create_index("ix_sectors_region_id", "sectors", ["region_id"])

    op.create_table(
        "schools",
        sa.Column("id", UUID, nullable=False),
        sa.Column("region_id", UUID, nullable=False),
        sa.Column("sector_id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_schools"),
        sa.ForeignKeyConstraint(["region_id"], ["regions.id"], name="fk_schools_region_id_regions"),
        sa.ForeignKeyConstraint(["sector_id"], ["sectors.id"], name="fk_schools_sector_id_sectors"),
    )
    op.create_index("ix_schools_region_id", "schools", ["region_id"])
    op.create_index("ix_schools_sector_id", "schools", ["sector_id"])

    # --- categories / category_columns ---
    op.create_table(
        "categories",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_categories"),
    )

    op.create_table(
        "category_columns",
        sa.Column("id", UUID, nullable=False),
        sa.Column("category_id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("options", sa.JSON(), server_default="[]"),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_category_columns"),
        sa.ForeignKeyConstraint(
            ["category_id"],
            ["categories.id"],
            name="fk_category_columns_category_id_categories",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "type IN ('text', 'number', 'date', 'select')",
            name="ck_category_columns_type",
        ),
    )
    op.create_index("ix_category_columns_category_id", "category_columns", ["category_id"])

    # --- roles / users ---
    op.create_table(
        "roles",
        sa.Column("id", UUID, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("permissions", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("is_system", sa.Boolean(), server_default="false"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    op.create_table(
        "users",
        sa.Column("id", UUID, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255)),
        sa.Column("role_id", UUID, nullable=False),
        sa.Column("region_id", UUID, nullable=True),
        sa.Column("sector_id", UUID, nullable=True),
        sa.Column("school_id", UUID, nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], name="fk_users_role_id_roles"),
        sa.ForeignKeyConstraint(["region_id"], ["regions.id"], name="fk_users_region_id_regions"),
        sa.ForeignKeyConstraint(["sector_id"], ["sectors.id"], name="fk_users_sector_id_sectors"),
        sa.ForeignKeyConstraint(["school_id"], ["schools.id"], name="fk_users_school_id_schools"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_region_id", "users", ["region_id"])
    op.create_index("ix_users_sector_id", "users", ["sector_id"])
    op.create_index("ix_users_school_id", "users", ["school_id"])

    # --- data_entries ---
    op.create_table(
        "data_entries",
        sa.Column("id", UUID, nullable=False),
        sa.Column("category_id", UUID, nullable=False),
        sa.Column("school_id", UUID, nullable=False),
        sa.Column("data", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", UUID, nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("approved_by", UUID, nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("approval_comment", sa.Text(), nullable=True),
        sa.Column("rejected_by", UUID, nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_data_entries"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], name="fk_data_entries_category_id_categories"),
        sa.ForeignKeyConstraint(["school_id"], ["schools.id"], name="fk_data_entries_school_id_schools"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], name="fk_data_entries_created_by_users"),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"], name="fk_data_entries_approved_by_users"),
        sa.ForeignKeyConstraint(["rejected_by"], ["users.id"], name="fk_data_entries_rejected_by_users"),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_data_entries_status",
        ),
    )
    op.create_index("ix_data_entries_category_id", "data_entries", ["category_id"])
    op.create_index("ix_data_entries_school_id", "data_entries", ["school_id"])
    op.create_index("ix_data_entries_status", "data_entries", ["status"])
    op.create_index("ix_data_entries_created_at", "data_entries", ["created_at"])
    # At most one draft or submitted entry per (category, school)
    op.create_index(
        "uq_data_entries_open_pair",
        "data_entries",
        ["category_id", "school_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('draft', 'submitted')"),
    )

    # --- data_history ---
    op.create_table(
        "data_history",
        sa.Column("id", UUID, nullable=False),
        sa.Column("entry_id", UUID, nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("previous_status", sa.String(20), nullable=True),
        sa.Column("transition", sa.String(20), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("changed_by", UUID, nullable=False),
        sa.Column("changed_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_data_history"),
        sa.ForeignKeyConstraint(
            ["entry_id"],
            ["data_entries.id"],
            name="fk_data_history_entry_id_data_entries",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(["changed_by"], ["users.id"], name="fk_data_history_changed_by_users"),
        sa.UniqueConstraint("entry_id", "sequence", name="uq_data_history_entry_sequence"),
    )
    op.create_index("ix_data_history_entry_id", "data_history", ["entry_id"])
    op.create_index("ix_data_history_changed_at", "data_history", ["changed_at"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="info"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", UUID, nullable=True),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()")),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_notifications_user_id_users",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    """Drop all core tables."""
    op.drop_table("notifications")
    op.drop_table("data_history")
    op.drop_table("data_entries")
    op.drop_table("users")
    op.drop_table("roles")
    op.drop_table("category_columns")
    op.drop_table("categories")
    op.drop_table("schools")
    op.drop_table("sectors")
    op.drop_table("regions")
