import base64
import os

import docx
import fitz
import pandas as pd
from PIL import Image

from docuchat.api.multimodal import file_input_manager
from docuchat.api.multimodal.file_input_manager import (
    classify_file,
    detect_mime_type,
    remove_quietly,
    save_upload,
)
from docuchat.llm.message_types import DocumentText, ImageBlock


def test_detect_mime_type_prefers_file_name() -> None:
    assert detect_mime_type("photo.PNG", "application/octet-stream") == "image/png"
    assert detect_mime_type("blob", "image/webp") == "image/webp"
    assert detect_mime_type("blob", None) == ""


def test_image_is_classified_as_base64_block(tmp_path) -> None:
    path = tmp_path / "dot.png"
    Image.new("RGB", (2, 2), "red").save(path)

    item = classify_file(str(path), "dot.png", "image/png")

    assert isinstance(item, ImageBlock)
    assert item.mime_type == "image/png"
    assert base64.b64decode(item.data) == path.read_bytes()
    assert item.data_uri.startswith("data:image/png;base64,")


def test_pdf_text_is_extracted(tmp_path) -> None:
    path = tmp_path / "doc.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Invoice total 42", fontname="helv", fontsize=12)
    doc.save(str(path))
    doc.close()

    item = classify_file(str(path), "doc.pdf", "application/pdf")

    assert isinstance(item, DocumentText)
    assert "Invoice total 42" in item.text


def test_docx_paragraphs_are_extracted(tmp_path) -> None:
    path = tmp_path / "notes.docx"
    document = docx.Document()
    document.add_paragraph("First line")
    document.add_paragraph("Second line")
    document.save(str(path))

    item = classify_file(str(path), "notes.docx", None)

    assert item == DocumentText("notes.docx", "First line\nSecond line")


def test_csv_rows_are_joined(tmp_path) -> None:
    path = tmp_path / "table.csv"
    path.write_text("name,qty\nbolt,4\nnut,10\n", encoding="utf-8")

    item = classify_file(str(path), "table.csv", "text/csv")

    assert item.text == "name, qty\nbolt, 4\nnut, 10"


def test_xlsx_sheets_are_labelled(tmp_path) -> None:
    path = tmp_path / "book.xlsx"
    with pd.ExcelWriter(path) as writer:
        pd.DataFrame([["a", "1"]]).to_excel(writer, sheet_name="First", index=False, header=False)
        pd.DataFrame([["b", "2"]]).to_excel(writer, sheet_name="Second", index=False, header=False)

    item = classify_file(str(path), "book.xlsx", None)

    assert "--- Sheet: First ---" in item.text
    assert "--- Sheet: Second ---" in item.text
    assert item.text.index("First") < item.text.index("Second")
    assert "a,1" in item.text


def test_plain_text_and_unknown_formats_are_read_as_text(tmp_path) -> None:
    txt = tmp_path / "readme.txt"
    txt.write_text("hello", encoding="utf-8")
    unknown = tmp_path / "data.weird"
    unknown.write_bytes(b"raw \xff bytes")

    assert classify_file(str(txt), "readme.txt").text == "hello"
    assert classify_file(str(unknown), "data.weird").text == "raw  bytes"


def test_broken_document_degrades_to_empty_text(tmp_path) -> None:
    path = tmp_path / "broken.docx"
    path.write_bytes(b"not a zip archive")

    item = classify_file(str(path), "broken.docx", None)

    assert item == DocumentText("broken.docx", "")


def test_save_upload_keeps_extension_and_remove_is_quiet(isolated_upload_dir) -> None:
    path = save_upload(b"payload", "Report.PDF")

    assert path.endswith(".pdf")
    assert os.path.dirname(path) == file_input_manager.UPLOAD_DIR
    with open(path, "rb") as f:
        assert f.read() == b"payload"

    remove_quietly(path)
    remove_quietly(path)
    remove_quietly(None)
    assert not os.path.exists(path)
