"""Column mixins shared by the clinic entities.

Timestamps are generated client-side so freshly flushed rows never need an
implicit refresh (which async sessions cannot perform lazily).
"""
from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


class SoftDeleteMixin:
    """Rows are never hard-deleted; ``deleted_at`` marks them as gone."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=None,
        nullable=True,
        index=True,
    )

    def soft_delete(self) -> None:
        self.deleted_at = utcnow()
