"""Versioned repository - SCD2 history for every versioned entity.

One generic repository serves policies, invitations, templates, cases, leads
and notes:
- find/get current version by any scope (business key, funeral home)
- full history (newest first) and exact version lookup
- save: version 1 inserts; version N+1 closes N and inserts in one SAVEPOINT
- delete: soft retirement (close without replacement)
- restore: new version from an old payload (never rewrites history)

No optimistic locking beyond the version check in save(): callers doing
load current -> decide -> save race under concurrent writers, and the loser
gets VersionConflictError (or the partial unique index rejects it).
"""

import copy
import logging
from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from funeral_core.core.errors import (
    NotFoundError,
    PersistenceError,
    ValidationError,
    VersionConflictError,
)
from funeral_core.db.types import utcnow
from funeral_core.db.versioning import VersionedMixin

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=VersionedMixin)


class VersionedRepository(Generic[ModelT]):
    """Generic SCD2 repository over one versioned model."""

    def __init__(self, model: type[ModelT]):
        self.model = model
        self.entity_type = model.__name__

    # =========================================================================
    # Reads
    # =========================================================================

    def find_current(self, db: Session, **scope: object) -> ModelT | None:
        """Current version matching scope (e.g. business_key=..., funeral_home_id=...)."""
        if not scope:
            raise ValidationError(f"{self.entity_type} lookup requires a scope", field="scope")
        query = select(self.model).where(self.model.is_current.is_(True))
        for column, value in scope.items():
            query = query.where(getattr(self.model, column) == value)
        return db.execute(query.order_by(self.model.version.desc()).limit(1)).scalars().first()

    def get_current(self, db: Session, **scope: object) -> ModelT:
        record = self.find_current(db, **scope)
        if record is None:
            described = ", ".join(f"{key}={value}" for key, value in scope.items())
            raise NotFoundError(
                f"No current {self.entity_type} for {described}",
                entity_type=self.entity_type,
                entity_id=str(next(iter(scope.values()))),
            )
        return record

    def get_history(self, db: Session, business_key: str) -> list[ModelT]:
        """All versions, newest first. Unknown business keys yield an empty list."""
        return list(db.execute(
            select(self.model)
            .where(self.model.business_key == business_key)
            .order_by(self.model.version.desc())
        ).scalars().all())

    def get_by_version(self, db: Session, business_key: str, version: int) -> ModelT:
        record = db.execute(
            select(self.model)
            .where(self.model.business_key == business_key)
            .where(self.model.version == version)
        ).scalar_one_or_none()
        if record is None:
            raise NotFoundError(
                f"{self.entity_type} version {version} not found for business key {business_key}",
                entity_type=self.entity_type,
                entity_id=business_key,
            )
        return record

    # =========================================================================
    # Writes
    # =========================================================================

    def save(self, db: Session, record: ModelT) -> ModelT:
        """
        Persist a version.

        Version 1 is a plain insert. Version N+1 closes the current row and
        inserts the new one with the same timestamp, atomically.

        Raises:
            NotFoundError: version > 1 but the business key has no current row
            VersionConflictError: record.version is not current.version + 1
            PersistenceError: any storage failure (nothing is left half-written)
        """
        if record.version is None or record.version < 1:
            raise ValidationError("Version must be at least 1", field="version")

        now = utcnow()
        try:
            with db.begin_nested():
                if record.version == 1:
                    self._insert_first(db, record, now)
                else:
                    self._close_and_insert(db, record, now)
        except (NotFoundError, PersistenceError):
            raise
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to save {self.entity_type} {record.business_key} v{record.version}: {exc}",
                business_key=record.business_key,
            ) from exc

        logger.info(
            "Saved %s %s v%s", self.entity_type, record.business_key, record.version
        )
        return record

    def delete(self, db: Session, business_key: str, actor: str) -> ModelT:
        """Retire the entity: close the current version without a replacement."""
        now = utcnow()
        try:
            with db.begin_nested():
                current = self._current_for_update(db, business_key)
                if current is None:
                    raise NotFoundError(
                        f"No current {self.entity_type} for business key {business_key}",
                        entity_type=self.entity_type,
                        entity_id=business_key,
                    )
                self._close(current, now, actor)
                db.flush()
        except NotFoundError:
            raise
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to retire {self.entity_type} {business_key}: {exc}",
                business_key=business_key,
            ) from exc

        logger.info("Retired %s %s at v%s", self.entity_type, business_key, current.version)
        return current

    def next_version(
        self,
        current: ModelT,
        *,
        actor: str,
        reason: str | None = None,
        **changes: object,
    ) -> ModelT:
        """Build version N+1 from current: same business key and payload, with changes applied."""
        allowed = set(self.model.payload_columns())
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(
                f"Not payload fields of {self.entity_type}: {', '.join(sorted(unknown))}"
            )

        values = {key: copy.deepcopy(getattr(current, key)) for key in allowed}
        values.update(changes)
        return self.model(
            business_key=current.business_key,
            version=current.version + 1,
            created_at=current.created_at,
            created_by=current.created_by,
            updated_by=actor,
            reason=reason,
            is_current=True,
            **values,
        )

    def restore_version(
        self,
        db: Session,
        business_key: str,
        target_version: int,
        actor: str,
    ) -> ModelT:
        """
        Roll back to a previous version.

        Creates a NEW version with the old payload (never rewrites history).
        """
        target = self.get_by_version(db, business_key, target_version)
        current = self.get_current(db, business_key=business_key)
        restored = self.next_version(
            current,
            actor=actor,
            reason=f"Rollback from v{current.version} to v{target_version}",
            **copy.deepcopy(target.payload()),
        )
        return self.save(db, restored)

    # =========================================================================
    # Internals
    # =========================================================================

    def _current_for_update(self, db: Session, business_key: str) -> ModelT | None:
        return db.execute(
            select(self.model)
            .where(self.model.business_key == business_key)
            .where(self.model.is_current.is_(True))
            .with_for_update()
        ).scalar_one_or_none()

    def _insert_first(self, db: Session, record: ModelT, now) -> None:
        existing = db.execute(
            select(func.max(self.model.version))
            .where(self.model.business_key == record.business_key)
        ).scalar()
        if existing:
            raise VersionConflictError(record.business_key, expected=existing + 1, actual=1)

        record.valid_from = now
        record.valid_to = None
        record.is_current = True
        record.created_at = record.created_at or now
        record.updated_at = now
        db.add(record)
        db.flush()

    def _close_and_insert(self, db: Session, record: ModelT, now) -> None:
        current = self._current_for_update(db, record.business_key)
        if current is None:
            raise NotFoundError(
                f"No current {self.entity_type} for business key {record.business_key}",
                entity_type=self.entity_type,
                entity_id=record.business_key,
            )
        if record.version != current.version + 1:
            raise VersionConflictError(
                record.business_key, expected=current.version + 1, actual=record.version
            )

        # Close first: the partial unique index allows one current row at a time
        self._close(current, now, record.updated_by or record.created_by)
        db.flush()

        record.valid_from = now
        record.valid_to = None
        record.is_current = True
        record.created_at = current.created_at
        record.created_by = current.created_by
        record.updated_at = now
        db.add(record)
        db.flush()

    @staticmethod
    def _close(current: ModelT, now, actor: str | None) -> None:
        current.is_current = False
        current.valid_to = now
        current.updated_at = now
        if actor:
            current.updated_by = actor
