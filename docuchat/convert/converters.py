"""Best-effort document format converters.

Each converter reads one or more input files and writes exactly one output file
under the upload directory, named `<millis>-<random>-<name>`. The random part
is reserved atomically, so concurrent requests never share an output path.
Conversions carry text only; layout, fonts, and embedded media are not
preserved.

Rendering:
    PDFs are written with PyMuPDF using the built-in Helvetica font at 12pt,
    50pt margins, and 16pt line spacing. Lines are word-wrapped to the usable
    page width and a new page starts when the cursor passes the bottom margin.

Error handling strategy:
    Parser and renderer exceptions are propagated; the HTTP adapter logs them
    and answers with a conversion error.
"""

import time
import tempfile
from pathlib import Path

import docx
import fitz
from PIL import Image

from docuchat.api.multimodal import file_input_manager
from docuchat.convert.readers import read_docx_text, read_pdf_text


FONT_NAME = "helv"
FONT_SIZE = 12
MARGIN = 50
LINE_HEIGHT = 16
PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")


def _temp_out(name: str, out_dir=None) -> Path:
    directory = Path(out_dir if out_dir is not None else file_input_manager.UPLOAD_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    temp_file = tempfile.NamedTemporaryFile(
        delete=False,
        prefix=f"{int(time.time() * 1000)}-",
        suffix=f"-{name}",
        dir=directory,
    )
    temp_file.close()
    return Path(temp_file.name)


def download_name(out_path) -> str:
    """User-facing file name of a converter output, without the unique prefix."""
    return Path(out_path).name.split("-", 2)[-1]


def _base_name(original_name: str, fallback: str) -> str:
    stem = Path(original_name or "").stem
    return stem or fallback


def wrap_text(text: str, max_width: float, font_size: float = FONT_SIZE) -> list[str]:
    """Greedy word wrap measured with the Helvetica metrics.

    Input line breaks are kept; a single word wider than `max_width` gets a
    line of its own.
    """
    lines = []
    for paragraph in (text or "").splitlines():
        line = ""
        for word in paragraph.split():
            candidate = f"{line} {word}" if line else word
            width = fitz.get_text_length(candidate, fontname=FONT_NAME, fontsize=font_size)
            if width > max_width and line:
                lines.append(line)
                line = word
            else:
                line = candidate
        lines.append(line)
    while lines and not lines[-1]:
        lines.pop()
    return lines


def _render_text_pdf(text: str, out_path: Path) -> Path:
    doc = fitz.open()
    try:
        page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        y = MARGIN + FONT_SIZE
        for line in wrap_text(text, PAGE_WIDTH - MARGIN * 2):
            if y > PAGE_HEIGHT - MARGIN:
                page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                y = MARGIN + FONT_SIZE
            if line:
                page.insert_text((MARGIN, y), line, fontname=FONT_NAME, fontsize=FONT_SIZE)
            y += LINE_HEIGHT
        doc.save(str(out_path))
    finally:
        doc.close()
    return out_path


def pdf_to_docx(pdf_path, original_name: str = "file.pdf", out_dir=None) -> Path:
    """PDF -> DOCX, one paragraph per extracted text line."""
    text = read_pdf_text(pdf_path)
    document = docx.Document()
    for line in text.split("\n"):
        document.add_paragraph(line)

    out_path = _temp_out(f"{_base_name(original_name, 'file')}.docx", out_dir)
    document.save(str(out_path))
    return out_path


def docx_to_pdf(docx_path, original_name: str = "file.docx", out_dir=None) -> Path:
    """DOCX -> PDF, paragraph text only."""
    text = read_docx_text(docx_path)
    out_path = _temp_out(f"{_base_name(original_name, 'file')}.pdf", out_dir)
    return _render_text_pdf(text, out_path)


def images_to_pdf(image_paths, out_dir=None) -> Path:
    """Images -> PDF, one page per image sized to the image's pixel dimensions."""
    if not image_paths:
        raise ValueError("No images to convert")

    doc = fitz.open()
    try:
        for image_path in image_paths:
            with Image.open(image_path) as img:
                width, height = img.size
            page = doc.new_page(width=width, height=height)
            page.insert_image(page.rect, filename=str(image_path))

        out_path = _temp_out("images.pdf", out_dir)
        doc.save(str(out_path))
    finally:
        doc.close()
    return out_path


def plain_to_pdf(text: str = "", out_dir=None) -> Path:
    """Text -> PDF."""
    out_path = _temp_out("text.pdf", out_dir)
    return _render_text_pdf(text, out_path)
