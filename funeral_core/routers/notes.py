"""Case notes router."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from funeral_core.core.deps import get_actor, get_db
from funeral_core.schemas.note import NoteCreate, NoteRead, NoteUpdate
from funeral_core.services import note_service

router = APIRouter()


@router.get("/cases/{case_id}/notes", response_model=list[NoteRead])
def list_case_notes(
    case_id: str,
    funeral_home_id: str = Query(default=""),
    db: Session = Depends(get_db),
):
    return note_service.list_case_notes(db, funeral_home_id, case_id)


@router.post("/cases/{case_id}/notes", response_model=NoteRead, status_code=201)
def create_note(
    case_id: str,
    data: NoteCreate,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    note = note_service.create_note(db, funeral_home_id, case_id, data.content, actor)
    db.commit()
    return note


@router.get("/notes/{business_key}", response_model=NoteRead)
def get_note(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    return note_service.get_note(db, business_key, funeral_home_id)


@router.patch("/notes/{business_key}", response_model=NoteRead)
def update_note(
    business_key: str,
    data: NoteUpdate,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Edit a note as a new version; the old text stays in history."""
    note = note_service.update_note(
        db, business_key, funeral_home_id, data.content, actor, reason=data.reason
    )
    db.commit()
    return note


@router.delete("/notes/{business_key}", response_model=NoteRead)
def delete_note(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    note = note_service.delete_note(db, business_key, funeral_home_id, actor)
    db.commit()
    return note


@router.get("/notes/{business_key}/history", response_model=list[NoteRead])
def get_note_history(
    business_key: str,
    funeral_home_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    return note_service.get_note_history(db, business_key, funeral_home_id)
