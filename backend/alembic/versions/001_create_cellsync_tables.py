"""Create edit log, spreadsheet and permission tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates `realtime_edits` (append-only edit log), `spreadsheets` and
       `spreadsheet_permissions`.
How:   Identity BIGINT key and server-side timestamp on the edit log; UUID
       keys on the document tables.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # now() is fixed at transaction start on PostgreSQL; clock_timestamp() is not
    if op.get_context().dialect.name == "postgresql":
        insert_clock = sa.text("clock_timestamp()")
    else:
        insert_clock = sa.text("CURRENT_TIMESTAMP")

    op.create_table(
        "realtime_edits",
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
            comment="Store-assigned identifier, unique across all spreadsheets",
        ),
        sa.Column("spreadsheet_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("cell", sa.String(16), nullable=False),
        sa.Column("new_value", sa.Text(), nullable=False),
        # Assigned by the database; clients never supply it
        sa.Column(
            "timestamp",
            sa.TIMESTAMP(timezone=True),
            server_default=insert_clock,
            nullable=False,
            comment="Server-assigned creation time (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    # Serves "edits of one spreadsheet, newest first"
    op.create_index(
        "idx_realtime_edits_sheet_ts",
        "realtime_edits",
        ["spreadsheet_id", sa.text("timestamp DESC"), sa.text("id DESC")],
    )

    op.create_table(
        "spreadsheets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_spreadsheets_owner", "spreadsheets", ["owner_id"])

    op.create_table(
        "spreadsheet_permissions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("spreadsheet_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, comment="viewer, editor, owner"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["spreadsheet_id"], ["spreadsheets.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("spreadsheet_id", "user_id", name="uq_permission_sheet_user"),
    )
    op.create_index("idx_permissions_user", "spreadsheet_permissions", ["user_id"])


def downgrade() -> None:
    """Drop all tables. The edit log cannot be recovered afterwards."""
    op.drop_index("idx_permissions_user", table_name="spreadsheet_permissions")
    op.drop_table("spreadsheet_permissions")
    op.drop_index("idx_spreadsheets_owner", table_name="spreadsheets")
    op.drop_table("spreadsheets")
    op.drop_index("idx_realtime_edits_sheet_ts", table_name="realtime_edits")
    op.drop_table("realtime_edits")
