"""Shared pytest fixtures: temporary database and storage, API client, generated PDFs."""

import os

# Must be set before bookshelf.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import random
from pathlib import Path
from typing import Callable, Optional

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient
from PIL import ImageFont
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bookshelf import database, models
from bookshelf.covers import CoverSynthesizer
from bookshelf.main import app
from bookshelf.routers.books import get_cover_synthesizer
from bookshelf.storage import Storage, get_storage


@pytest.fixture
def session_factory(tmp_path: Path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False}
    )
    database.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path: Path) -> Storage:
    return Storage(tmp_path / "storage")


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def fake_font(tmp_path: Path, monkeypatch) -> Path:
    """A candidate font file that exists, with truetype() answering Pillow's built-in font."""
    font_path = tmp_path / "fonts" / "Cover-Bold.ttf"
    font_path.parent.mkdir()
    font_path.write_bytes(b"not really a font")
    # Load before patching: newer Pillow builds load_default() on top of truetype()
    builtin = ImageFont.load_default()
    monkeypatch.setattr(ImageFont, "truetype", lambda *args, **kwargs: builtin)
    return font_path


@pytest.fixture
def synthesizer(storage: Storage, fake_font: Path, scratch_dir: Path) -> CoverSynthesizer:
    return CoverSynthesizer(
        storage.covers, [str(fake_font)], rng=random.Random(7), scratch_dir=str(scratch_dir)
    )


@pytest.fixture
def make_pdf(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a PDF with the given embedded metadata and page count."""

    def _make(name: str = "book.pdf", title: str = "", author: str = "", pages: int = 3) -> Path:
        doc = fitz.open()
        for _ in range(pages):
            doc.new_page()
        doc.set_metadata({"title": title, "author": author})
        path = tmp_path / name
        doc.save(str(path))
        doc.close()
        return path

    return _make


@pytest.fixture
def client(session_factory, storage: Storage, synthesizer: CoverSynthesizer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_cover_synthesizer] = lambda: synthesizer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict]:
    """Register a user and return Authorization headers for them."""

    def _register(email: str = "reader@example.com", password: str = "correct-horse", name: str = "Reader") -> dict:
        response = client.post("/register", json={"name": name, "email": email, "password": password})
        assert response.status_code == 201, response.text
        token = client.post("/token", data={"username": email, "password": password}).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _register


@pytest.fixture
def auth_headers(register) -> dict:
    return register()


@pytest.fixture
def upload(client: TestClient, auth_headers: dict):
    """POST a document (and optional cover) to /books/ and return the response."""

    def _upload(
        path: Path,
        title: str = "My Book",
        headers: Optional[dict] = None,
        cover: Optional[tuple] = None,
        **fields,
    ):
        data = {"title": title, **{k: str(v) for k, v in fields.items()}}
        with open(path, "rb") as fh:
            files = {"file": (path.name, fh.read(), "application/octet-stream")}
        if cover is not None:
            files["cover_image"] = cover
        return client.post("/books/", data=data, files=files, headers=headers or auth_headers)

    return _upload


@pytest.fixture
def fetch_book(session_factory) -> Callable[[int], Optional[models.Book]]:
    """Read a Book row straight from the database, bypassing the API."""

    def _fetch(book_id: int) -> Optional[models.Book]:
        with session_factory() as session:
            return session.get(models.Book, book_id)

    return _fetch
