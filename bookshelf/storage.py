import os
import shutil
import logging
import uuid
from pathlib import Path
from typing import BinaryIO

from .config import settings

logger = logging.getLogger(__name__)


class DiskBucket:
    """
    One directory of the blob store. Keys are bare file names relative to the bucket root.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path(self, key: str) -> Path:
        # Never let a key escape the bucket directory
        return self.root / os.path.basename(key)

    def exists(self, key: str) -> bool:
        return bool(key) and self.path(key).is_file()

    def store(self, fileobj: BinaryIO, extension: str) -> str:
        """Copy an upload stream into the bucket under a fresh random name."""
        key = f"{uuid.uuid4().hex}.{extension.lstrip('.').lower()}"
        fileobj.seek(0)
        with open(self.path(key), "wb") as buffer:
            shutil.copyfileobj(fileobj, buffer)
        return key

    def store_named(self, data: bytes, filename: str) -> str:
        key = os.path.basename(filename)
        with open(self.path(key), "wb") as f:
            f.write(data)
        return key

    def delete(self, key: str) -> None:
        if not key:
            return
        try:
            self.path(key).unlink()
        except FileNotFoundError:
            logger.warning(f"Tried to delete missing blob {self.root.name}/{key}")


class Storage:
    def __init__(self, root: Path):
        self.root = Path(root)
        self.books = DiskBucket(self.root / "books")
        self.covers = DiskBucket(self.root / "covers")


_storage = None

def get_storage() -> Storage:
    global _storage
    if _storage is None:
        _storage = Storage(Path(settings.storage_path))
    return _storage
