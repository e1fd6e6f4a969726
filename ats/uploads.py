"""
File upload handling: image storage and resume text extraction.

Files are validated completely in memory (extension, then size) before
anything touches the upload directory, so a rejected upload never leaves a
partial file behind.
"""

import logging
import os
import time
import uuid
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from werkzeug.utils import secure_filename

from ats.errors import ValidationError

logger = logging.getLogger(__name__)

RESUME_EXTENSIONS = {".pdf", ".txt", ".md", ".docx"}
IMPORT_PREVIEW_CHARS = 1000


def pick_file(files, names: Iterable[str] = ("image", "file")):
    """Return the first non-empty upload among the accepted field names."""
    for name in names:
        upload = files.get(name)
        if upload is not None and upload.filename:
            return upload
    return None


def read_limited(upload, max_bytes: int) -> bytes:
    """
    Read an upload into memory, refusing anything over ``max_bytes``.

    Raises:
        ValidationError: If the payload is larger than the limit
    """
    data = upload.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File too large (max {max_bytes // (1024 * 1024)} MB)")
    return data


def unique_name(original: str, now: Optional[float] = None) -> str:
    """``<epoch millis>-<random>-<sanitized name>``"""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{millis}-{uuid.uuid4().hex[:8]}-{secure_filename(original) or 'upload'}"


def save_image(upload, upload_dir: Path, max_bytes: int, allowed_extensions: Iterable[str]) -> str:
    """
    Validate and store an image upload.

    Returns:
        Stored file name (relative to ``upload_dir``)

    Raises:
        ValidationError: Missing file, disallowed extension or oversized payload
    """
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")

    ext = os.path.splitext(upload.filename)[1].lower().lstrip(".")
    allowed = {e.lower().lstrip(".") for e in allowed_extensions}
    if ext not in allowed:
        raise ValidationError(f"Only image files are allowed ({', '.join(sorted(allowed))})")

    data = read_limited(upload, max_bytes)

    upload_dir = Path(upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = unique_name(upload.filename)
    (upload_dir / name).write_bytes(data)

    logger.info(f"Stored upload {name} ({len(data)} bytes)")
    return name


def extract_resume_text(upload, max_bytes: int) -> str:
    """
    Pull plain text out of an uploaded resume (PDF, DOCX, TXT or MD).

    Raises:
        ValidationError: Missing file, unsupported type or unreadable document
    """
    if upload is None or not upload.filename:
        raise ValidationError("No file uploaded")

    ext = os.path.splitext(upload.filename)[1].lower()
    if ext not in RESUME_EXTENSIONS:
        raise ValidationError("Invalid file type. Only PDF, DOCX, TXT, MD allowed")

    data = read_limited(upload, max_bytes)

    if ext == ".pdf":
        try:
            reader = PdfReader(BytesIO(data))
            text_parts = [page.extract_text() or "" for page in reader.pages]
        except (PdfReadError, ValueError) as e:
            logger.warning(f"PDF extraction failed for {upload.filename}: {e}")
            raise ValidationError(f"PDF extraction failed: {e}")
        return "\n\n".join(text_parts)

    if ext == ".docx":
        try:
            doc = Document(BytesIO(data))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
            raise ValidationError(f"DOCX extraction failed: {e}")
        return "\n".join(p.text for p in doc.paragraphs)

    return data.decode("utf-8", errors="replace")
