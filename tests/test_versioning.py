"""Tests for the SCD2 versioned repository."""

import pytest
from sqlalchemy import func, select

from funeral_core.core.errors import (
    NotFoundError,
    PayloadMutationError,
    ValidationError,
    VersionConflictError,
)
from funeral_core.db.models import CaseNote
from funeral_core.services.version_service import VersionedRepository


notes = VersionedRepository(CaseNote)


def _note(business_key="NOTE_1", version=1, content="First draft"):
    return CaseNote(
        business_key=business_key,
        version=version,
        funeral_home_id="fh_1",
        case_id="CASE_1",
        content=content,
        created_by="staff_1",
        updated_by="staff_1",
    )


def _current_count(db, business_key):
    return db.execute(
        select(func.count(CaseNote.id))
        .where(CaseNote.business_key == business_key)
        .where(CaseNote.is_current.is_(True))
    ).scalar()


def test_first_save_is_current_and_open(db):
    note = notes.save(db, _note())

    assert note.version == 1
    assert note.is_current is True
    assert note.valid_to is None
    assert note.created_at == note.valid_from


def test_new_version_closes_previous_at_same_instant(db):
    v1 = notes.save(db, _note())
    v2 = notes.save(db, notes.next_version(v1, actor="staff_2", reason="typo", content="Second draft"))

    assert v1.is_current is False
    assert v1.valid_to == v2.valid_from
    assert v1.updated_by == "staff_2"
    assert v2.version == 2
    assert v2.created_at == v1.created_at
    assert v2.created_by == "staff_1"
    assert v2.updated_by == "staff_2"
    assert _current_count(db, "NOTE_1") == 1


def test_history_is_contiguous_newest_first(db):
    current = notes.save(db, _note())
    for text in ("two", "three", "four"):
        current = notes.save(db, notes.next_version(current, actor="staff_1", content=text))

    history = notes.get_history(db, "NOTE_1")

    assert [v.version for v in history] == [4, 3, 2, 1]
    assert [v.content for v in history] == ["four", "three", "two", "First draft"]
    assert [v.is_current for v in history] == [True, False, False, False]
    for newer, older in zip(history, history[1:]):
        assert older.valid_to == newer.valid_from


def test_saved_first_version_reads_back_unchanged(db):
    saved_payload = notes.save(db, _note()).payload()
    db.commit()
    db.expire_all()

    loaded = notes.get_by_version(db, "NOTE_1", 1)

    assert loaded.payload() == saved_payload
    assert loaded.content == "First draft"
    assert loaded.is_current is True
    assert loaded.valid_to is None


def test_history_reads_are_stable_without_writes(db):
    current = notes.save(db, _note())
    current = notes.save(db, notes.next_version(current, actor="staff_1", content="two"))
    db.commit()

    def snapshot():
        return [
            (v.id, v.version, v.is_current, v.valid_from, v.valid_to, v.payload())
            for v in notes.get_history(db, "NOTE_1")
        ]

    first = snapshot()
    db.expire_all()
    second = snapshot()

    assert first == second
    assert [row[1] for row in first] == [2, 1]


def test_duplicate_first_version_conflicts(db):
    notes.save(db, _note())

    with pytest.raises(VersionConflictError) as exc_info:
        notes.save(db, _note(content="Other"))

    assert exc_info.value.expected == 2
    assert exc_info.value.actual == 1
    assert len(notes.get_history(db, "NOTE_1")) == 1


def test_skipped_version_conflicts_and_leaves_current_untouched(db):
    v1 = notes.save(db, _note())

    with pytest.raises(VersionConflictError):
        notes.save(db, _note(version=3, content="Skipped"))

    assert v1.is_current is True
    assert notes.get_current(db, business_key="NOTE_1").version == 1


def test_new_version_of_unknown_key_is_not_found(db):
    with pytest.raises(NotFoundError):
        notes.save(db, _note(business_key="NOTE_missing", version=2))


def test_payload_is_immutable_after_insert(db):
    note = notes.save(db, _note())
    note.content = "Edited in place"

    with pytest.raises(PayloadMutationError):
        db.flush()


def test_next_version_rejects_bookkeeping_fields(db):
    v1 = notes.save(db, _note())

    with pytest.raises(ValueError):
        notes.next_version(v1, actor="staff_1", is_current=False)


def test_find_current_requires_scope(db):
    with pytest.raises(ValidationError):
        notes.find_current(db)


def test_delete_retires_without_replacement(db):
    v1 = notes.save(db, _note())
    notes.save(db, notes.next_version(v1, actor="staff_1", content="Second"))

    retired = notes.delete(db, "NOTE_1", "staff_3")

    assert retired.version == 2
    assert retired.valid_to is not None
    assert notes.find_current(db, business_key="NOTE_1") is None
    with pytest.raises(NotFoundError):
        notes.get_current(db, business_key="NOTE_1")
    assert len(notes.get_history(db, "NOTE_1")) == 2


def test_restore_writes_new_version_with_old_payload(db):
    v1 = notes.save(db, _note())
    notes.save(db, notes.next_version(v1, actor="staff_1", content="Second"))

    restored = notes.restore_version(db, "NOTE_1", 1, "staff_2")

    assert restored.version == 3
    assert restored.content == "First draft"
    assert "v1" in restored.reason
    assert [v.content for v in notes.get_history(db, "NOTE_1")] == ["First draft", "Second", "First draft"]


def test_get_by_version_unknown_is_not_found(db):
    notes.save(db, _note())

    with pytest.raises(NotFoundError):
        notes.get_by_version(db, "NOTE_1", 7)
