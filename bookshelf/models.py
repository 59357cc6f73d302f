from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, Date, Numeric, Enum, Table, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

BOOK_STATUSES = ("unread", "reading", "completed")

note_tag = Table(
    "note_tag",
    Base.metadata,
    Column("note_id", Integer, ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    books = relationship("Book", back_populates="user", cascade="all, delete-orphan")
    notes = relationship("Note", back_populates="user", cascade="all, delete-orphan")
    tags = relationship("Tag", back_populates="user", cascade="all, delete-orphan")

class Author(Base):
    __tablename__ = "authors"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    bio = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    books = relationship("Book", back_populates="author")

class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    books = relationship("Book", back_populates="category")

class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("authors.id", ondelete="SET NULL"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    isbn = Column(String(20), nullable=True)
    publisher = Column(String(255), nullable=True)
    publish_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)

    # Keys into the covers / books storage buckets
    cover_image = Column(String, nullable=True)
    file_path = Column(String, nullable=False)
    file_type = Column(String(10), nullable=False)  # pdf, epub, mobi
    file_size = Column(Integer, nullable=False)  # in bytes

    pages = Column(Integer, nullable=True)
    reading_progress = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    status = Column(Enum(*BOOK_STATUSES, name="book_status"), nullable=False, default="unread", index=True)
    rating = Column(Integer, nullable=True)  # 1-5

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="books")
    author = relationship("Author", back_populates="books")
    category = relationship("Category", back_populates="books")
    notes = relationship("Note", back_populates="book", cascade="all, delete-orphan", order_by="Note.id")

    @property
    def formatted_file_size(self) -> str:
        size = float(self.file_size or 0)
        units = ["B", "KB", "MB", "GB"]
        i = 0
        while size > 1024 and i < len(units) - 1:
            size /= 1024
            i += 1
        return f"{size:.2f}".rstrip("0").rstrip(".") + " " + units[i]

class Note(Base):
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    page_number = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="notes")
    book = relationship("Book", back_populates="notes")
    tags = relationship("Tag", secondary=note_tag, back_populates="notes", order_by="Tag.name")

class Tag(Base):
    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)

    user = relationship("User", back_populates="tags")
    notes = relationship("Note", secondary=note_tag, back_populates="tags")
