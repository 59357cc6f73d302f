import logging

from fastapi import FastAPI
from .config import settings
from .database import engine, Base
from .routers import auth, books, notes, catalog, dashboard

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

Base.metadata.create_all(bind=engine)

app = FastAPI(title="Bookshelf")

app.include_router(auth.router)
app.include_router(books.router)
app.include_router(notes.router)
app.include_router(catalog.router)
app.include_router(dashboard.router)

@app.get("/")
def root():
    return {"message": "Bookshelf API is running"}
