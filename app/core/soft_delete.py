from datetime import datetime, timezone
from sqlalchemy import TIMESTAMP, ColumnElement
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SoftDeleteMixin:
    """
    Tombstone column shared by every soft-deletable model.
    - `deleted_at IS NULL` means live; read paths filter through `live()` instead of spelling it out
    - rows are never physically removed, so identity lookups keep working for history
    """
    deleted_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True, index=True)

    @classmethod
    def live(cls) -> ColumnElement[bool]:
        return cls.deleted_at.is_(None)

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    def mark_deleted(self, at: datetime | None = None) -> None:
        self.deleted_at = at or utcnow()
