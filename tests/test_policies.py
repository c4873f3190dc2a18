"""Tests for per-funeral-home policy versioning."""

import pytest

from funeral_core.core.errors import NotFoundError, ValidationError
from funeral_core.db.enums import PolicyType
from funeral_core.services import policy_service


def test_provision_defaults_is_idempotent(db):
    created = policy_service.provision_default_policies(db, "fh_new", "staff_1")
    again = policy_service.provision_default_policies(db, "fh_new", "staff_1")

    assert set(created) == set(PolicyType)
    assert again == []


def test_resolve_unprovisioned_funeral_home_is_not_found(db):
    with pytest.raises(NotFoundError):
        policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, "fh_unknown")


def test_resolve_requires_funeral_home(db):
    with pytest.raises(ValidationError):
        policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, "")


def test_policies_are_isolated_per_funeral_home(db, funeral_home_id):
    policy_service.provision_default_policies(db, "fh_other", "staff_1")
    policy_service.update_policy(
        db, PolicyType.NOTE_MANAGEMENT, "fh_other", {"allow_delete": False}, "staff_1"
    )

    ours = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    theirs = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, "fh_other")

    assert ours.allow_delete is True
    assert theirs.allow_delete is False
    assert ours.business_key != theirs.business_key


def test_create_twice_is_rejected(db, funeral_home_id):
    with pytest.raises(ValidationError):
        policy_service.create_policy(
            db,
            PolicyType.INVITATION_MANAGEMENT,
            funeral_home_id,
            policy_service.DEFAULT_POLICY_PAYLOADS[PolicyType.INVITATION_MANAGEMENT],
            "staff_1",
        )


def test_update_writes_new_version_and_keeps_history(db, funeral_home_id):
    v1 = policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, funeral_home_id)

    v2 = policy_service.update_policy(
        db,
        PolicyType.LEAD_SCORING,
        funeral_home_id,
        {"at_need_initial_score": 90},
        "staff_2",
        reason="Busier season",
    )

    assert v2.version == 2
    assert v2.business_key == v1.business_key
    assert v2.at_need_initial_score == 90
    assert v2.pre_need_initial_score == v1.pre_need_initial_score
    assert v2.reason == "Busier season"

    history = policy_service.get_policy_history(db, PolicyType.LEAD_SCORING, funeral_home_id)
    assert [record.version for record in history] == [2, 1]
    assert history[1].at_need_initial_score == 80
    assert history[1].valid_to == history[0].valid_from


def test_invalid_update_writes_nothing(db, funeral_home_id):
    with pytest.raises(ValidationError) as exc_info:
        policy_service.update_policy(
            db,
            PolicyType.LEAD_SCORING,
            funeral_home_id,
            {"warm_lead_threshold": 75},
            "staff_1",
        )

    assert "hot > warm > cold" in exc_info.value.message
    current = policy_service.resolve_policy(db, PolicyType.LEAD_SCORING, funeral_home_id)
    assert current.version == 1


def test_overlapping_sources_are_rejected():
    payload = {
        **policy_service.DEFAULT_POLICY_PAYLOADS[PolicyType.LEAD_SCORING],
        "preferred_sources": ["Referral"],
        "disallowed_sources": [" referral "],
    }

    with pytest.raises(ValidationError):
        policy_service.validate_payload(PolicyType.LEAD_SCORING, payload)


def test_scope_cannot_change(db, funeral_home_id):
    with pytest.raises(ValidationError):
        policy_service.update_policy(
            db, PolicyType.NOTE_MANAGEMENT, funeral_home_id, {"funeral_home_id": "fh_x"}, "staff_1"
        )


def test_unknown_field_is_rejected_without_new_version(db, funeral_home_id):
    with pytest.raises(ValidationError) as exc_info:
        policy_service.update_policy(
            db, PolicyType.NOTE_MANAGEMENT, funeral_home_id, {"max_content_len": 50}, "staff_1"
        )

    assert exc_info.value.field == "max_content_len"
    current = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    assert current.version == 1
    assert current.max_content_length == 10_000


def test_update_without_change_is_rejected(db, funeral_home_id):
    with pytest.raises(ValidationError) as exc_info:
        policy_service.update_policy(
            db, PolicyType.NOTE_MANAGEMENT, funeral_home_id, {"max_content_length": 10_000}, "staff_1"
        )

    assert exc_info.value.field == "changes"
    history = policy_service.get_policy_history(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    assert [v.version for v in history] == [1]


def test_restore_creates_new_version(db, funeral_home_id):
    policy_service.update_policy(
        db, PolicyType.INVITATION_MANAGEMENT, funeral_home_id, {"expiration_days": 14}, "staff_1"
    )

    restored = policy_service.restore_policy_version(
        db, PolicyType.INVITATION_MANAGEMENT, funeral_home_id, 1, "staff_2"
    )

    assert restored.version == 3
    assert restored.expiration_days == 7
    assert restored.updated_by == "staff_2"
    old = policy_service.get_policy_version(db, PolicyType.INVITATION_MANAGEMENT, funeral_home_id, 2)
    assert old.expiration_days == 14
    assert old.is_current is False


def test_retired_policy_keeps_history_and_can_be_reprovisioned(db, funeral_home_id):
    retired = policy_service.retire_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id, "staff_1")

    with pytest.raises(NotFoundError):
        policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    history = policy_service.get_policy_history(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    assert [record.version for record in history] == [1]

    created = policy_service.provision_default_policies(db, funeral_home_id, "staff_1")
    assert created == [PolicyType.NOTE_MANAGEMENT]
    fresh = policy_service.resolve_policy(db, PolicyType.NOTE_MANAGEMENT, funeral_home_id)
    assert fresh.business_key != retired.business_key
    assert fresh.version == 1
