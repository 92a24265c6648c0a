"""
CellSync Backend — Spreadsheet and Permission Models
=====================================================

What:  ORM models for the `spreadsheets` and `spreadsheet_permissions` tables.
Who:   Used by SpreadsheetService and PermissionService.

Relationships are expressed as a foreign key only; the services load and
delete dependent permissions with explicit statements, since lazy loading is
unavailable on async sessions.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from cellsync.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Spreadsheet(Base):
    """A logical spreadsheet document owned by one user."""

    __tablename__ = "spreadsheets"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        comment="Spreadsheet identity, also the key of its edit log",
    )

    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display title",
    )

    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Auth provider id of the owning user",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        comment="When the spreadsheet was created (UTC)",
    )

    __table_args__ = (
        Index("idx_spreadsheets_owner", owner_id),
    )

    def __repr__(self) -> str:
        return f"<Spreadsheet(id={self.id}, title='{self.title}', owner_id='{self.owner_id}')>"


class Permission(Base):
    """
    Grants one user a role on one spreadsheet.

    Lifecycle:
        Created by a grant, role changed by an update, removed by a revoke
        or when the spreadsheet is deleted.
    """

    __tablename__ = "spreadsheet_permissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    spreadsheet_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("spreadsheets.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Auth provider id of the grantee",
    )

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Permission role: viewer, editor, owner",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("spreadsheet_id", "user_id", name="uq_permission_sheet_user"),
        Index("idx_permissions_user", user_id),
    )

    def __repr__(self) -> str:
        return (
            f"<Permission(id={self.id}, spreadsheet_id={self.spreadsheet_id}, "
            f"user_id='{self.user_id}', role='{self.role}')>"
        )
