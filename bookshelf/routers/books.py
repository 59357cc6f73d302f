import logging
import math
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, UploadFile, File, Form, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas, database, auth
from ..config import settings
from ..covers import CoverSynthesizer, MetadataExtractionFailed, extractor_for
from ..policies import authorize
from ..storage import Storage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Books"])

BOOK_MEDIA_TYPES = {
    "pdf": "application/pdf",
    "epub": "application/epub+zip",
    "mobi": "application/x-mobipocket-ebook",
}
COVER_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "bmp", "webp"}

def get_cover_synthesizer(storage: Storage = Depends(get_storage)) -> CoverSynthesizer:
    return CoverSynthesizer(storage.covers, settings.cover_font_paths)

# --- HELPERS ---
def _extension(filename: Optional[str]) -> str:
    return Path(filename or "").suffix.lstrip(".").lower()

def _upload_size(upload: UploadFile) -> int:
    size = 0
    upload.file.seek(0)
    for block in iter(lambda: upload.file.read(1024 * 1024), b""):
        size += len(block)
    upload.file.seek(0)
    return size

def _validate_book_file(upload: UploadFile):
    extension = _extension(upload.filename)
    if extension not in BOOK_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type, expected pdf, epub or mobi")
    size = _upload_size(upload)
    if size == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if size > settings.max_book_bytes:
        raise HTTPException(status_code=400, detail="Book file is too large")
    return extension, size

def _has_upload(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)

def _validate_cover(upload: UploadFile) -> str:
    extension = _extension(upload.filename)
    if extension not in COVER_EXTENSIONS or not (upload.content_type or "image/").startswith("image/"):
        raise HTTPException(status_code=400, detail="Cover must be an image")
    if _upload_size(upload) > settings.max_cover_bytes:
        raise HTTPException(status_code=400, detail="Cover image is too large")
    return extension

def _check_references(db: Session, author_id: Optional[int], category_id: Optional[int]):
    if author_id is not None and db.get(models.Author, author_id) is None:
        raise HTTPException(status_code=422, detail="The selected author does not exist")
    if category_id is not None and db.get(models.Category, category_id) is None:
        raise HTTPException(status_code=422, detail="The selected category does not exist")

def get_book_or_404(db: Session, book_id: int) -> models.Book:
    book = db.get(models.Book, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book

def _page_count(path: Path) -> Optional[int]:
    extractor = extractor_for(path)
    if not extractor.supported:
        return None
    try:
        return extractor.extract(path).page_count
    except MetadataExtractionFailed as e:
        logger.warning(f"Could not count pages: {e}")
        return None

# --- ENDPOINTS ---
@router.get("/books/", response_model=schemas.BookPage)
def list_books(
    category_id: Optional[int] = Query(None),
    book_status: Optional[schemas.BookStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    current_user: models.User = Depends(auth.get_current_user),
    db: Session = Depends(database.get_db)
):
    query = db.query(models.Book).options(
        joinedload(models.Book.author), joinedload(models.Book.category)
    ).filter(models.Book.user_id == current_user.id)

    if category_id is not None:
        query = query.filter(models.Book.category_id == category_id)
    if book_status:
        query = query.filter(models.Book.status == book_status)
    if search:
        pattern = f"%{search}%"
        query = query.outerjoin(models.Author, models.Book.author_id == models.Author.id).filter(
            or_(models.Book.title.like(pattern), models.Author.name.like(pattern))
        )

    per_page = settings.books_per_page
    total = query.count()
    items = query.order_by(models.Book.created_at.desc(), models.Book.id.desc()) \
        .offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)),
        "filters": {"category_id": category_id, "status": book_status, "search": search},
    }

@router.post("/books/", response_model=schemas.BookResponse, status_code=status.HTTP_201_CREATED)
def upload_book(
    title: str = Form(..., min_length=1, max_length=255),
    author_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    isbn: Optional[str] = Form(None, max_length=20),
    publisher: Optional[str] = Form(None, max_length=255),
    publish_date: Optional[date] = Form(None),
    description: Optional[str] = Form(None),
    rating: Optional[int] = Form(None, ge=1, le=5),
    file: UploadFile = File(...),
    cover_image: Optional[UploadFile] = File(None),
    current_user: models.User = Depends(auth.get_current_user),
    db: Session = Depends(database.get_db),
    storage: Storage = Depends(get_storage),
    synthesizer: CoverSynthesizer = Depends(get_cover_synthesizer),
):
    file_type, file_size = _validate_book_file(file)
    has_cover = _has_upload(cover_image)
    cover_ext = _validate_cover(cover_image) if has_cover else None
    _check_references(db, author_id, category_id)

    file_key = storage.books.store(file.file, file_type)
    cover_key = storage.covers.store(cover_image.file, cover_ext) if has_cover else None
    document_path = storage.books.path(file_key)

    new_book = models.Book(
        user_id=current_user.id, author_id=author_id, category_id=category_id,
        title=title, isbn=isbn, publisher=publisher, publish_date=publish_date,
        description=description, cover_image=cover_key, file_path=file_key,
        file_type=file_type, file_size=file_size, pages=_page_count(document_path),
        rating=rating,
    )
    try:
        db.add(new_book)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        storage.books.delete(file_key)
        storage.covers.delete(cover_key)
        logger.error(f"Upload failed: {e}")
        raise HTTPException(status_code=500, detail="Processing failed")
    logger.info(f"User {current_user.id} uploaded book {new_book.id} ({file_type}, {file_size} bytes)")

    # The book is stored at this point; a missing cover never fails the upload
    if cover_key is None:
        generated = synthesizer.synthesize(document_path, title)
        if generated:
            new_book.cover_image = generated
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                storage.covers.delete(generated)
                logger.error(f"Could not save cover {generated}, keeping the book without one: {e}")

    db.refresh(new_book)
    return new_book

@router.get("/books/{book_id}", response_model=schemas.BookDetail)
def show_book(book_id: int, current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    book = get_book_or_404(db, book_id)
    authorize("view", current_user, book)
    return book

@router.put("/books/{book_id}", response_model=schemas.BookResponse)
def update_book(
    book_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=255),
    author_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    isbn: Optional[str] = Form(None, max_length=20),
    publisher: Optional[str] = Form(None, max_length=255),
    publish_date: Optional[date] = Form(None),
    description: Optional[str] = Form(None),
    rating: Optional[int] = Form(None, ge=1, le=5),
    book_status: Optional[schemas.BookStatus] = Form(None, alias="status"),
    reading_progress: Optional[float] = Form(None, ge=0, le=100),
    cover_image: Optional[UploadFile] = File(None),
    current_user: models.User = Depends(auth.get_current_user),
    db: Session = Depends(database.get_db),
    storage: Storage = Depends(get_storage),
):
    book = get_book_or_404(db, book_id)
    authorize("update", current_user, book)
    _check_references(db, author_id, category_id)

    old_cover = new_cover = None
    if _has_upload(cover_image):
        cover_ext = _validate_cover(cover_image)
        old_cover = book.cover_image
        new_cover = storage.covers.store(cover_image.file, cover_ext)
        book.cover_image = new_cover

    changes = {
        "title": title, "author_id": author_id, "category_id": category_id,
        "isbn": isbn, "publisher": publisher, "publish_date": publish_date,
        "description": description, "rating": rating, "status": book_status,
    }
    for field, value in changes.items():
        if value is not None:
            setattr(book, field, value)
    if reading_progress is not None:
        book.reading_progress = round(reading_progress, 2)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        if new_cover:
            storage.covers.delete(new_cover)
        logger.error(f"Update of book {book_id} failed: {e}")
        raise HTTPException(status_code=500, detail="Update failed")

    # Old cover goes only once the row points at the new one
    if old_cover:
        storage.covers.delete(old_cover)
    db.refresh(book)
    return book

@router.put("/books/{book_id}/progress", response_model=schemas.BookResponse)
def update_progress(book_id: int, update: schemas.ProgressUpdate, current_user: models.User = Depends(auth.get_current_user), db: Session = Depends(database.get_db)):
    book = get_book_or_404(db, book_id)
    authorize("update", current_user, book)
    book.reading_progress = round(update.reading_progress, 2)
    if update.status:
        book.status = update.status
    db.commit()
    db.refresh(book)
    return book

@router.delete("/books/{book_id}")
def delete_book(
    book_id: int,
    current_user: models.User = Depends(auth.get_current_user),
    db: Session = Depends(database.get_db),
    storage: Storage = Depends(get_storage),
):
    book = get_book_or_404(db, book_id)
    authorize("delete", current_user, book)

    storage.books.delete(book.file_path)
    if book.cover_image:
        storage.covers.delete(book.cover_image)

    db.delete(book)
    db.commit()
    logger.info(f"User {current_user.id} deleted book {book_id}")
    return {"detail": "Deleted"}

@router.get("/books/{book_id}/serve")
def serve_book(
    book_id: int,
    current_user: models.User = Depends(auth.get_current_user_hybrid),
    db: Session = Depends(database.get_db),
    storage: Storage = Depends(get_storage),
):
    book = get_book_or_404(db, book_id)
    authorize("view", current_user, book)

    path = storage.books.path(book.file_path)
    if not path.exists():
        raise HTTPException(status_code=404, detail="File missing from server")

    return FileResponse(
        path=path,
        filename=f"{book.title}.{book.file_type}",
        media_type=BOOK_MEDIA_TYPES.get(book.file_type, "application/octet-stream"),
        content_disposition_type="inline",
    )

@router.get("/books/{book_id}/cover")
def get_cover(
    book_id: int,
    current_user: models.User = Depends(auth.get_current_user_hybrid),
    db: Session = Depends(database.get_db),
    storage: Storage = Depends(get_storage),
):
    book = get_book_or_404(db, book_id)
    authorize("view", current_user, book)
    if not book.cover_image or not storage.covers.exists(book.cover_image):
        raise HTTPException(status_code=404, detail="No cover")
    return FileResponse(storage.covers.path(book.cover_image))
