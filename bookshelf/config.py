import os
from typing import List

from pydantic_settings import BaseSettings

DEFAULT_FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./bookshelf.db"
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    storage_path: str = os.path.join(os.path.expanduser("~"), "Bookshelf Storage")
    max_book_bytes: int = 100 * 1024 * 1024
    max_cover_bytes: int = 5 * 1024 * 1024
    books_per_page: int = 20

    # Probed in order, first existing file wins
    cover_font_paths: List[str] = DEFAULT_FONT_PATHS

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
