from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import models, schemas, database, auth

router = APIRouter(prefix="/api", tags=["Catalog"], dependencies=[Depends(auth.get_current_user)])

@router.get("/authors", response_model=List[schemas.AuthorResponse])
def list_authors(db: Session = Depends(database.get_db)):
    return db.query(models.Author).order_by(models.Author.name).all()

@router.post("/authors", response_model=schemas.AuthorResponse, status_code=status.HTTP_201_CREATED)
def create_author(author: schemas.AuthorCreate, db: Session = Depends(database.get_db)):
    db_author = models.Author(name=author.name, bio=author.bio)
    db.add(db_author)
    db.commit()
    db.refresh(db_author)
    return db_author

@router.get("/categories", response_model=List[schemas.CategoryResponse])
def list_categories(db: Session = Depends(database.get_db)):
    return db.query(models.Category).order_by(models.Category.name).all()

@router.post("/categories", response_model=schemas.CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(category: schemas.CategoryCreate, db: Session = Depends(database.get_db)):
    if db.query(models.Category).filter(models.Category.name == category.name).first():
        raise HTTPException(status_code=422, detail="The name has already been taken")

    db_category = models.Category(name=category.name, description=category.description, color=category.color)
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category
