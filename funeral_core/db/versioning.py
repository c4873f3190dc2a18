"""
SCD2 (Slowly Changing Dimension Type 2) record shape.

Every versioned table stores one row per version:
- business_key links all versions of one logical entity
- version is 1..N, contiguous, unique per business_key
- exactly one row per business_key has is_current = true (none once retired)
- valid_to of version N equals valid_from of version N+1

Payload columns never change after insert; the only in-place update a row
ever receives is being closed (is_current, valid_to, updated_at, updated_by).
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Index, Integer, String, Text, UniqueConstraint, Uuid, event, inspect, text
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from funeral_core.core.errors import PayloadMutationError
from funeral_core.db.types import utcnow


VERSION_COLUMNS = frozenset({
    "id",
    "business_key",
    "version",
    "valid_from",
    "valid_to",
    "is_current",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
    "reason",
})


class VersionedMixin:
    """Temporal bookkeeping columns shared by all SCD2 entities."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    valid_from: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    valid_to: Mapped[datetime | None] = mapped_column(nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @classmethod
    def payload_columns(cls) -> list[str]:
        """Attribute keys of the domain payload (everything but bookkeeping)."""
        return [
            attr.key
            for attr in inspect(cls).column_attrs
            if attr.key not in VERSION_COLUMNS
        ]

    def payload(self) -> dict:
        return {key: getattr(self, key) for key in self.payload_columns()}


def versioned_table_args(tablename: str, *extra) -> tuple:
    """Constraints every versioned table carries, plus table-specific extras."""
    return (
        UniqueConstraint("business_key", "version", name=f"uq_{tablename}_key_version"),
        # At most one current row per business key
        Index(
            f"uq_{tablename}_current",
            "business_key",
            unique=True,
            postgresql_where=text("is_current = true"),
            sqlite_where=text("is_current = 1"),
        ),
        CheckConstraint(
            "valid_to IS NULL OR valid_to >= valid_from",
            name=f"ck_{tablename}_valid_period",
        ),
        *extra,
    )


@event.listens_for(Session, "before_flush")
def _reject_payload_mutation(session, flush_context, instances):
    for obj in session.dirty:
        if not isinstance(obj, VersionedMixin):
            continue
        state = inspect(obj)
        changed = [
            key for key in obj.payload_columns()
            if state.attrs[key].history.has_changes()
        ]
        if changed:
            raise PayloadMutationError(
                f"{type(obj).__name__} {obj.business_key} v{obj.version} is immutable; "
                f"write a new version instead (changed: {', '.join(sorted(changed))})"
            )
