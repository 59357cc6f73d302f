from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas, database, auth

router = APIRouter(tags=["Dashboard"])

@router.get("/dashboard", response_model=schemas.DashboardStats)
def dashboard(current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    books = db.query(models.Book).filter(models.Book.user_id == current_user.id)
    total_notes = db.query(models.Note).join(models.Book).filter(models.Book.user_id == current_user.id).count()
    return {
        "total_books": books.count(),
        "read_books": books.filter(models.Book.status == "completed").count(),
        "total_notes": total_notes,
    }
