"""Document ingestion: turn a PDF, image, text file or URL into a Document."""

from __future__ import annotations

import io
import logging
import os
import re
from pathlib import Path

import pytesseract
import requests
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from errors import InputRejected
from models import Document

MIN_TEXT_CHARS = 50
MAX_FILE_BYTES = 10 * 1024 * 1024
REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_TESSERACT_LANG = "eng"

PDF_TYPE = "application/pdf"
IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
TEXT_TYPES = frozenset({"text/plain", "text/markdown"})

_EXTENSION_TYPES = {
    ".pdf": PDF_TYPE,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".txt": "text/plain",
    ".md": "text/markdown",
}

_MANUAL_PASTE_HINT = "Please try a different file or paste text manually."

LOGGER = logging.getLogger(__name__)


def make_document(text: str | None) -> Document:
    """Wrap submitted text in a Document; empty text is rejected."""
    if text is None or not text.strip():
        raise InputRejected("Paper content is required")
    return Document(content=text)


def normalize_text(text: str) -> str:
    """Unify line endings and collapse runs of blank lines."""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_text(data: bytes, media_type: str, filename: str = "") -> str:
    """Extract normalized text from an uploaded file.

    Raises InputRejected for unsupported types, oversized files, unreadable
    files, and extractions shorter than MIN_TEXT_CHARS.
    """
    media_type = (media_type or "").split(";")[0].strip().lower()
    label = filename or media_type or "upload"

    if len(data) > MAX_FILE_BYTES:
        raise InputRejected("File is too large. Please upload a file smaller than 10MB.")

    if media_type == PDF_TYPE:
        raw = _pdf_text(data, label)
    elif media_type in IMAGE_TYPES:
        raw = _image_text(data, label)
    elif media_type in TEXT_TYPES:
        raw = data.decode("utf-8", errors="replace")
    else:
        raise InputRejected("Unsupported file type. Please upload a PDF or image file.")

    text = normalize_text(raw)
    if len(text) < MIN_TEXT_CHARS:
        raise InputRejected(f"Could not extract enough text from the file. {_MANUAL_PASTE_HINT}")

    LOGGER.info("Extracted %s chars from %s (%s)", len(text), label, media_type)
    return text


def load_path(path: str | Path) -> Document:
    """Build a Document from a local file, choosing the extractor by extension."""
    path = Path(path)
    if not path.is_file():
        raise InputRejected(f"File not found: {path}")

    media_type = _EXTENSION_TYPES.get(path.suffix.lower(), "")
    if path.stat().st_size > MAX_FILE_BYTES:
        raise InputRejected("File is too large. Please upload a file smaller than 10MB.")
    return make_document(extract_text(path.read_bytes(), media_type, filename=path.name))


def fetch_url(url: str) -> Document:
    """Download a paper (PDF, image or plain text) and build a Document from it."""
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise InputRejected(f"Failed to download {url}: {exc}", cause=exc) from exc

    media_type = response.headers.get("Content-Type", "")
    if not media_type.split(";")[0].strip():
        media_type = _EXTENSION_TYPES.get(Path(url.split("?")[0]).suffix.lower(), "")
    LOGGER.info("Fetched %s bytes from %s (%s)", len(response.content), url, media_type)
    return make_document(extract_text(response.content, media_type, filename=url))


def _pdf_text(data: bytes, label: str) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        return "\n\n".join(page.extract_text() or "" for page in reader.pages)
    except (PdfReadError, ValueError) as exc:
        raise InputRejected(f"Failed to process file {label}. {_MANUAL_PASTE_HINT}", cause=exc) from exc


def _image_text(data: bytes, label: str) -> str:
    try:
        with Image.open(io.BytesIO(data)) as image:
            return pytesseract.image_to_string(image, lang=os.getenv("TESSERACT_LANG", DEFAULT_TESSERACT_LANG))
    except (UnidentifiedImageError, OSError, pytesseract.TesseractError) as exc:
        raise InputRejected(f"Failed to process file {label}. {_MANUAL_PASTE_HINT}", cause=exc) from exc
