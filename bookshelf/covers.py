"""
Placeholder cover generation for uploaded documents.

A cover is synthesized from the document's embedded metadata (title, author,
page count) when the user uploads a PDF without supplying a cover image:

1. Extract metadata through a MetadataExtractor picked by file extension.
2. Pick a colour pair from PALETTE with the injected random source.
3. Lay out the canvas: two decorative circles, the wrapped title, the author
   (only when known) and a page-count label.
4. Rasterize with the first candidate font that exists, encode as JPEG into a
   scratch file and store it in the covers bucket as "<stem>_cover.jpg".

Title wrapping is fixed-width chunking: the title is cut every
MAX_CHARS_PER_LINE characters, words may be split, and anything past the
third chunk is dropped.
"""
import logging
import os
import random
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple

import fitz  # PyMuPDF
from PIL import Image, ImageColor, ImageDraw, ImageFont

from .storage import DiskBucket

logger = logging.getLogger(__name__)

CANVAS_SIZE = (600, 800)
JPEG_QUALITY = 90

MAX_CHARS_PER_LINE = 20
MAX_TITLE_LINES = 3

TITLE_FONT_SIZE = 46
AUTHOR_FONT_SIZE = 28
PAGES_FONT_SIZE = 22
TITLE_TOP = 250
TITLE_LINE_HEIGHT = 62
AUTHOR_GAP = 40
PAGES_Y = 710
PAGE_UNIT = "pages"

ACCENT_ALPHA = 48

# (background, foreground)
PALETTE = [
    ("#1f3a5f", "#f4efe6"),
    ("#2e4a3f", "#f1e9d2"),
    ("#5b2333", "#f7f4f3"),
    ("#2b2d42", "#edf2f4"),
    ("#3d405b", "#f2cc8f"),
    ("#264653", "#e9c46a"),
    ("#6d597a", "#ffe8d6"),
    ("#0b3954", "#bfd7ea"),
]

COVER_SUFFIX = "_cover.jpg"


class CoverError(Exception):
    """Base class for everything that stops a cover from being produced."""


class MetadataExtractionFailed(CoverError):
    pass


class FontUnavailable(CoverError):
    pass


class EncodeOrPersistFailed(CoverError):
    pass


@dataclass
class DocumentMetadata:
    title: str = ""
    author: str = ""
    page_count: int = 0


class MetadataExtractor(Protocol):
    supported: bool

    def extract(self, document_path: Path) -> DocumentMetadata:
        ...


class PdfMetadataExtractor:
    supported = True

    def extract(self, document_path: Path) -> DocumentMetadata:
        try:
            with fitz.open(str(document_path)) as doc:
                meta = doc.metadata or {}
                return DocumentMetadata(
                    title=(meta.get("title") or "").strip(),
                    author=(meta.get("author") or "").strip(),
                    page_count=doc.page_count or 0,
                )
        except Exception as e:
            raise MetadataExtractionFailed(f"Could not read metadata from {document_path}: {e}") from e


class UnsupportedFormat:
    """Formats we can't read embedded metadata from (EPUB, MOBI, anything else)."""

    supported = False

    def extract(self, document_path: Path) -> DocumentMetadata:
        raise MetadataExtractionFailed(f"No metadata extractor for {Path(document_path).suffix or document_path}")


EXTRACTORS = {
    "pdf": PdfMetadataExtractor(),
}


def extractor_for(document_path) -> MetadataExtractor:
    extension = Path(document_path).suffix.lstrip(".").lower()
    return EXTRACTORS.get(extension, UnsupportedFormat())


class FontLocator:
    def __init__(self, candidates: Sequence[str]):
        self.candidates = [Path(c) for c in candidates]

    def locate(self) -> Path:
        for candidate in self.candidates:
            if candidate.is_file():
                return candidate
        raise FontUnavailable(f"None of the {len(self.candidates)} candidate font files exist")


def wrap_title(title: str, width: int = MAX_CHARS_PER_LINE, max_lines: int = MAX_TITLE_LINES) -> List[str]:
    """Fixed-width chunking, truncated to `max_lines` chunks. Does not respect word boundaries."""
    chunks = [title[i:i + width] for i in range(0, len(title), width)]
    return chunks[:max_lines]


@dataclass
class TextElement:
    kind: str  # "title", "author" or "pages"
    text: str
    y: int
    size: int


@dataclass
class CoverLayout:
    background: str
    foreground: str
    circles: List[Tuple[int, int, int, int]]
    texts: List[TextElement] = field(default_factory=list)

    def texts_of(self, kind: str) -> List[TextElement]:
        return [t for t in self.texts if t.kind == kind]


def layout_cover(metadata: DocumentMetadata, colors: Tuple[str, str]) -> CoverLayout:
    width, height = CANVAS_SIZE
    background, foreground = colors
    layout = CoverLayout(
        background=background,
        foreground=foreground,
        circles=[
            (-220, -220, 220, 220),
            (width - 260, height - 260, width + 260, height + 260),
        ],
    )

    # Pillow can't measure text containing line breaks
    title = " ".join(metadata.title.split())
    author = " ".join(metadata.author.split())

    y = TITLE_TOP
    for line in wrap_title(title):
        layout.texts.append(TextElement("title", line, y, TITLE_FONT_SIZE))
        y += TITLE_LINE_HEIGHT

    if author:
        layout.texts.append(TextElement("author", author, y + AUTHOR_GAP, AUTHOR_FONT_SIZE))

    layout.texts.append(TextElement("pages", f"{metadata.page_count} {PAGE_UNIT}", PAGES_Y, PAGES_FONT_SIZE))
    return layout


def load_fonts(font_path: Path, sizes) -> dict:
    try:
        return {size: ImageFont.truetype(str(font_path), size) for size in set(sizes)}
    except OSError as e:
        raise FontUnavailable(f"Font {font_path} could not be loaded: {e}") from e


def render_cover(layout: CoverLayout, fonts: dict) -> Image.Image:
    width, _ = CANVAS_SIZE
    image = Image.new("RGBA", CANVAS_SIZE, layout.background)

    overlay = Image.new("RGBA", CANVAS_SIZE, (0, 0, 0, 0))
    accent = ImageColor.getrgb(layout.foreground)[:3] + (ACCENT_ALPHA,)
    overlay_draw = ImageDraw.Draw(overlay)
    for bbox in layout.circles:
        overlay_draw.ellipse(bbox, fill=accent)
    image = Image.alpha_composite(image, overlay).convert("RGB")

    draw = ImageDraw.Draw(image)
    for element in layout.texts:
        font = fonts[element.size]
        x = (width - draw.textlength(element.text, font=font)) / 2
        draw.text((x, element.y), element.text, fill=layout.foreground, font=font)
    return image


@contextmanager
def scratch_file(suffix: str, directory: Optional[str] = None) -> Iterator[Path]:
    fd, name = tempfile.mkstemp(suffix=suffix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def cover_filename(document_path) -> str:
    return f"{Path(document_path).stem}{COVER_SUFFIX}"


class CoverSynthesizer:
    def __init__(
        self,
        covers: DiskBucket,
        font_paths: Sequence[str],
        rng: Optional[random.Random] = None,
        scratch_dir: Optional[str] = None,
    ):
        self.covers = covers
        self.fonts = FontLocator(font_paths)
        self.rng = rng or random.Random()
        self.scratch_dir = scratch_dir

    def generate(self, document_path, fallback_title: str) -> Optional[str]:
        """
        Build and store a cover, returning its key in the covers bucket.

        Returns None when the format has no extractor. Raises a CoverError
        subclass for every other failure.
        """
        extractor = extractor_for(document_path)
        if not extractor.supported:
            logger.debug(f"No cover synthesis for {document_path}: unsupported format")
            return None

        metadata = extractor.extract(Path(document_path))
        if not metadata.title:
            metadata.title = fallback_title

        font_path = self.fonts.locate()
        layout = layout_cover(metadata, self.rng.choice(PALETTE))
        fonts = load_fonts(font_path, [t.size for t in layout.texts])
        image = render_cover(layout, fonts)

        try:
            with scratch_file(".jpg", self.scratch_dir) as tmp_path:
                image.save(tmp_path, "JPEG", quality=JPEG_QUALITY)
                return self.covers.store_named(tmp_path.read_bytes(), cover_filename(document_path))
        except (OSError, ValueError) as e:
            raise EncodeOrPersistFailed(f"Could not write cover for {document_path}: {e}") from e

    def synthesize(self, document_path, fallback_title: str) -> Optional[str]:
        """Like generate(), but any failure is logged and turned into None."""
        try:
            key = self.generate(document_path, fallback_title)
        except CoverError as e:
            logger.warning(f"Cover synthesis failed ({type(e).__name__}): {e}")
            return None
        except Exception:
            logger.exception(f"Unexpected error while synthesizing cover for {document_path}")
            return None

        if key:
            logger.info(f"Generated cover {key} for {Path(document_path).name}")
        return key
