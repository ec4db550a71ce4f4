"""Make data_history append-only

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

History rows are snapshots of an entry at each status change. Triggers
reject any UPDATE or DELETE on them.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, Sequence[str], None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_data_history_change()
        RETURNS TRIGGER AS $trigger$
        BEGIN
            RAISE EXCEPTION 'data_history rows are immutable. Record ID: %', OLD.id;
        END;
        $trigger$ LANGUAGE plpgsql;
    """)

    op.execute("""
        CREATE TRIGGER data_history_prevent_update
        BEFORE UPDATE ON data_history
        FOR EACH ROW
        EXECUTE FUNCTION prevent_data_history_change();
    """)

    op.execute("""
        CREATE TRIGGER data_history_prevent_delete
        BEFORE DELETE ON data_history
        FOR EACH ROW
        EXECUTE FUNCTION prevent_data_history_change();
    """)


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS data_history_prevent_update ON data_history;")
    op.execute("DROP TRIGGER IF EXISTS data_history_prevent_delete ON data_history;")
    op.execute("DROP FUNCTION IF EXISTS prevent_data_history_change();")
