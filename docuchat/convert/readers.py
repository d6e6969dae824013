"""Plain-text readers shared by attachment extraction and the converters."""

import os

import pdfplumber
import docx


def read_pdf_text(path) -> str:
    """Extract text from each PDF page and concatenate with newlines."""
    text = []

    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            text.append(page.extract_text() or "")

    return "\n".join(text).strip()


def read_docx_text(path) -> str:
    """Extract paragraph text from a DOCX document."""
    doc = docx.Document(os.fspath(path))
    return "\n".join(p.text for p in doc.paragraphs).strip()
