from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas, database, auth
from ..policies import authorize
from .books import get_book_or_404

router = APIRouter(tags=["Notes"])

def _first_or_create_tags(db: Session, user: models.User, names: List[str]) -> List[models.Tag]:
    tags = []
    for name in dict.fromkeys(names):
        tag = db.query(models.Tag).filter(models.Tag.user_id == user.id, models.Tag.name == name).first()
        if tag is None:
            tag = models.Tag(user_id=user.id, name=name)
            db.add(tag)
            db.flush()
        tags.append(tag)
    return tags

def _get_note_or_404(db: Session, note_id: int) -> models.Note:
    note = db.get(models.Note, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    return note

def _commit_or_rollback(db: Session):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Could not save note")

@router.post("/books/{book_id}/notes", response_model=schemas.NoteResponse, status_code=status.HTTP_201_CREATED)
def create_note(book_id: int, payload: schemas.NoteCreate, current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    book = get_book_or_404(db, book_id)
    authorize("view", current_user, book)

    note = models.Note(user_id=current_user.id, book_id=book.id, content=payload.content, page_number=payload.page_number)
    db.add(note)
    if payload.tags:
        note.tags = _first_or_create_tags(db, current_user, payload.tags)
    _commit_or_rollback(db)
    db.refresh(note)
    return note

@router.put("/notes/{note_id}", response_model=schemas.NoteResponse)
def update_note(note_id: int, payload: schemas.NoteUpdate, current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    note = _get_note_or_404(db, note_id)
    authorize("update", current_user, note)

    note.content = payload.content
    note.page_number = payload.page_number
    # An explicit empty list detaches every tag, a missing list keeps them
    if payload.tags is not None:
        note.tags = _first_or_create_tags(db, current_user, payload.tags)
    _commit_or_rollback(db)
    db.refresh(note)
    return note

@router.delete("/notes/{note_id}")
def delete_note(note_id: int, current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    note = _get_note_or_404(db, note_id)
    authorize("delete", current_user, note)
    db.delete(note)
    db.commit()
    return {"detail": "Deleted"}
