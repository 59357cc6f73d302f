from pydantic import BaseModel, Field
from typing import Annotated, List, Literal, Optional
from datetime import date, datetime

BookStatus = Literal["unread", "reading", "completed"]
TagName = Annotated[str, Field(min_length=1, max_length=50)]

# --- Token ---
class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str

class TokenData(BaseModel):
    email: Optional[str] = None

# --- User ---
class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8)

class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    class Config:
        from_attributes = True

# --- Author ---
class AuthorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    bio: Optional[str] = None

class AuthorResponse(BaseModel):
    id: int
    name: str
    bio: Optional[str] = None
    class Config:
        from_attributes = True

# --- Category ---
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=7)

class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    class Config:
        from_attributes = True

# --- Notes ---
class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1)
    page_number: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[TagName]] = None

class NoteUpdate(NoteCreate):
    pass

class TagResponse(BaseModel):
    id: int
    name: str
    class Config:
        from_attributes = True

class NoteResponse(BaseModel):
    id: int
    book_id: int
    content: str
    page_number: Optional[str] = None
    tags: List[TagResponse] = []
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

# --- Progress ---
class ProgressUpdate(BaseModel):
    reading_progress: float = Field(..., ge=0, le=100)
    status: Optional[BookStatus] = None

# --- Book ---
class BookResponse(BaseModel):
    id: int
    title: str
    author: Optional[AuthorResponse] = None
    category: Optional[CategoryResponse] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    publish_date: Optional[date] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None
    file_path: str
    file_type: str
    file_size: int
    formatted_file_size: str
    pages: Optional[int] = None
    reading_progress: float
    status: BookStatus
    rating: Optional[int] = None
    created_at: Optional[datetime] = None
    class Config:
        from_attributes = True

class BookDetail(BookResponse):
    notes: List[NoteResponse] = []

class BookFilters(BaseModel):
    category_id: Optional[int] = None
    status: Optional[BookStatus] = None
    search: Optional[str] = None

class BookPage(BaseModel):
    items: List[BookResponse]
    total: int
    page: int
    per_page: int
    last_page: int
    filters: BookFilters

# --- Dashboard ---
class DashboardStats(BaseModel):
    total_books: int
    read_books: int
    total_notes: int
