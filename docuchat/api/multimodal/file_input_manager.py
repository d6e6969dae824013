"""
Upload classification and text extraction for chat attachments.

Architectural role:
- Persist each uploaded file to a request-owned temporary file.
- Classify it as an image (kept as base64) or a document (reduced to text).
- Remove temporary files best-effort once the request is done.

Processing lifecycle:
1. `save_upload` writes the bytes under `UPLOAD_DIR`.
2. `classify_file` resolves the media type and dispatches extraction.
3. The caller removes the file with `remove_quietly` in a `finally` block.

Error handling strategy:
- Extraction failures are logged and degrade to empty text; the request
  continues with the remaining files.
- Cleanup failures are swallowed; they cannot change a response that has
  already been computed.
"""

import os
import base64
import logging
import mimetypes
import tempfile

import pandas as pd

from docuchat.convert.readers import read_docx_text, read_pdf_text
from docuchat.llm.message_types import DocumentText, ImageBlock


logger = logging.getLogger(__name__)


# ============================================================
# CONFIG
# ============================================================

PROJECT_ROOT = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)
UPLOAD_DIR = os.path.realpath(
    os.getenv("UPLOAD_DIR", os.path.join(PROJECT_ROOT, "uploads"))
)


def _max_file_size_mb() -> int:
    try:
        return max(1, int(os.getenv("MAX_FILE_SIZE_MB", "25")))
    except ValueError:
        return 25


MAX_FILE_SIZE_MB = _max_file_size_mb()
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ============================================================
# TEMP FILE LIFECYCLE
# ============================================================

def save_upload(data: bytes, filename: str = "") -> str:
    """Write uploaded bytes to a temp file under `UPLOAD_DIR` and return its path.

    The original extension is kept so extension-based parsers still work.
    """
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    _, ext = os.path.splitext(filename or "")
    temp_file = tempfile.NamedTemporaryFile(
        delete=False,
        suffix=ext.lower() or ".tmp",
        dir=UPLOAD_DIR,
    )
    try:
        temp_file.write(data)
    finally:
        temp_file.close()
    return temp_file.name


def remove_quietly(path) -> None:
    """Delete `path` if it exists. Failures are logged at debug level only."""
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.debug("Could not remove temporary file %s", path, exc_info=True)


# ============================================================
# CLASSIFICATION
# ============================================================

def detect_mime_type(filename: str, declared_type: str | None = None) -> str:
    """Guess from the file name first, fall back to the declared upload type."""
    guessed, _ = mimetypes.guess_type(filename or "")
    return (guessed or declared_type or "").strip().lower()


def classify_file(path: str, filename: str, declared_type: str | None = None):
    """Return an `ImageBlock` for images, otherwise a `DocumentText`."""
    mime_type = detect_mime_type(filename, declared_type)

    if mime_type.startswith("image/"):
        with open(path, "rb") as f:
            encoded = base64.b64encode(f.read()).decode("ascii")
        return ImageBlock(mime_type=mime_type, data=encoded, filename=filename)

    try:
        text = extract_text(path, filename, mime_type)
    except Exception:
        logger.exception("Text extraction failed for %s", filename)
        text = ""
    return DocumentText(filename=filename, text=text)


# ============================================================
# EXTRACTION ROUTER
# ============================================================

def extract_text(path: str, filename: str = "", mime_type: str = "") -> str:
    """Dispatch extraction based on extension and media type."""

    _, ext = os.path.splitext(filename or path)
    ext = ext.lower()

    if ext == ".pdf" or mime_type == "application/pdf":
        return read_pdf_text(path)

    if ext == ".docx" or mime_type == DOCX_MIME:
        return read_docx_text(path)

    if ext == ".csv" or "csv" in mime_type:
        return _extract_csv(path)

    if ext == ".xlsx" or mime_type == XLSX_MIME:
        return _extract_xlsx(path)

    if ext == ".txt" or mime_type.startswith("text/"):
        return _extract_txt(path)

    return _read_fallback(path)


# ============================================================
# TEXT
# ============================================================

def _extract_txt(path: str) -> str:
    """Read UTF-8 text with decoding errors ignored."""
    with open(path, "r", encoding="utf-8", errors="ignore") as f:
        return f.read()


# ============================================================
# CSV / XLSX
# ============================================================

def _rows_to_text(df: pd.DataFrame) -> str:
    return "\n".join(", ".join(str(cell) for cell in row) for row in df.itertuples(index=False))


def _extract_csv(path: str) -> str:
    """Render every CSV row as comma-separated values, one row per line."""
    try:
        df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return ""
    return _rows_to_text(df)


def _extract_xlsx(path: str) -> str:
    """Render each sheet as CSV rows under a `--- Sheet: name ---` header."""
    sheets = pd.read_excel(path, sheet_name=None, header=None, dtype=str, keep_default_na=False)
    out = []
    for name, df in sheets.items():
        rows = df.to_csv(index=False, header=False)
        out.append(f"--- Sheet: {name} ---\n{rows}")
    return "\n".join(out).strip()


# ============================================================
# FALLBACK
# ============================================================

def _read_fallback(path: str) -> str:
    try:
        return _extract_txt(path)
    except OSError:
        return ""
