"""
CellSync Backend — Edit Record SQLAlchemy Model
=================================================

What:  ORM model for the `realtime_edits` table, the append-only edit log.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for
       migrations.
Who:   Written and read exclusively through EditStore.

Table Design:
    - Integer identity primary key: unique across the whole table and
      increasing in insertion order, which makes it the tiebreak for rows
      sharing a timestamp
    - timestamp: assigned by the database at insert time (never by the
      client); the sole ordering key for history reads
    - No UPDATE or DELETE path exists anywhere in the code base

    Composite index (spreadsheet_id, timestamp DESC, id DESC) serves the one
    read pattern: "latest edits of this spreadsheet, newest first".
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.expression import FunctionElement

from cellsync.database import Base


class insert_clock(FunctionElement):
    """
    Wall-clock time at the moment the row is written.

    PostgreSQL's now() is frozen at transaction start, so overlapping
    transactions could stamp rows out of id order; clock_timestamp() is not.
    """
    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(insert_clock)
def _insert_clock_default(element, compiler, **kw):
    return "CURRENT_TIMESTAMP"


@compiles(insert_clock, "postgresql")
def _insert_clock_postgresql(element, compiler, **kw):
    return "clock_timestamp()"


class EditRecord(Base):
    """
    One immutable cell write: who (user_id), where (spreadsheet_id, cell),
    what (new_value) and when (timestamp).
    """

    __tablename__ = "realtime_edits"

    # BIGINT identity on PostgreSQL; SQLite only auto-increments INTEGER keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
        comment="Store-assigned identifier, unique across all spreadsheets",
    )

    spreadsheet_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Identity of the spreadsheet this edit belongs to",
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Author of the edit as supplied by the gateway",
    )

    cell: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Cell address, e.g. A1",
    )

    new_value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Value written to the cell",
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=insert_clock(),
        comment="Server-assigned creation time (UTC)",
    )

    __table_args__ = (
        Index(
            "idx_realtime_edits_sheet_ts",
            spreadsheet_id,
            timestamp.desc(),
            id.desc(),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<EditRecord(id={self.id}, spreadsheet_id='{self.spreadsheet_id}', "
            f"cell='{self.cell}', timestamp='{self.timestamp}')>"
        )
