"""Policies router - per-funeral-home policy versions."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_db
from funeral_core.db.enums import PolicyType
from funeral_core.schemas.policy import PolicyCreate, PolicyRead, PolicyRestore, PolicyUpdate
from funeral_core.schemas.versioning import VersionRead
from funeral_core.services import policy_service

router = APIRouter()


def to_policy_read(policy_type: PolicyType, record) -> PolicyRead:
    return PolicyRead(
        **VersionRead.model_validate(record).model_dump(),
        policy_type=policy_type,
        funeral_home_id=record.funeral_home_id,
        payload=policy_service.policy_payload(record),
    )


@router.post("/{policy_type}", response_model=PolicyRead, status_code=201)
def create_policy(
    policy_type: PolicyType,
    data: PolicyCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Provision version 1 for a funeral home."""
    record = policy_service.create_policy(
        db, policy_type, data.funeral_home_id, data.payload, actor, reason=data.reason
    )
    db.commit()
    return to_policy_read(policy_type, record)


@router.get("/{policy_type}", response_model=PolicyRead)
def get_current_policy(
    policy_type: PolicyType,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    record = policy_service.resolve_policy(db, policy_type, funeral_home_id)
    return to_policy_read(policy_type, record)


@router.patch("/{policy_type}", response_model=PolicyRead)
def update_policy(
    policy_type: PolicyType,
    data: PolicyUpdate,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Write a new version with the given changes."""
    record = policy_service.update_policy(
        db, policy_type, funeral_home_id, data.changes, actor, reason=data.reason
    )
    db.commit()
    return to_policy_read(policy_type, record)


@router.get("/{policy_type}/history", response_model=list[PolicyRead])
def get_policy_history(
    policy_type: PolicyType,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """All versions, newest first."""
    versions = policy_service.get_policy_history(db, policy_type, funeral_home_id)
    return [to_policy_read(policy_type, record) for record in versions]


@router.get("/{policy_type}/versions/{version}", response_model=PolicyRead)
def get_policy_version(
    policy_type: PolicyType,
    version: int,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    record = policy_service.get_policy_version(db, policy_type, funeral_home_id, version)
    return to_policy_read(policy_type, record)


@router.post("/{policy_type}/restore", response_model=PolicyRead)
def restore_policy_version(
    policy_type: PolicyType,
    data: PolicyRestore,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Roll back by writing a new version with an old version's payload."""
    record = policy_service.restore_policy_version(
        db, policy_type, funeral_home_id, data.target_version, actor
    )
    db.commit()
    return to_policy_read(policy_type, record)


@router.delete("/{policy_type}", response_model=PolicyRead)
def retire_policy(
    policy_type: PolicyType,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    record = policy_service.retire_policy(db, policy_type, funeral_home_id, actor)
    db.commit()
    return to_policy_read(policy_type, record)
