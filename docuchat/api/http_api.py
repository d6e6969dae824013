"""
HTTP API adapter for docuchat.

Architectural role:
- Expose chat, chat-with-attachments, file analysis, and conversion routes.
- Turn multipart uploads into classified attachments (images vs. document text).
- Delegate model calls to `docuchat.llm.service` and conversions to
  `docuchat.convert.converters`.

Endpoint responsibilities:
- `POST /api/chat`: JSON prompt + history, no attachments.
- `POST /api/chat-with-files`: multipart prompt + history (JSON string) + files.
- `POST /api/analyze`: multipart task question + files, no history.
- `POST /api/convert/*`: file downloads produced by the converters.

Request lifecycle (chat-with-files):
1. Read each upload and enforce count/size limits.
2. Save it to a temp file, classify it, and delete the temp file.
3. Call `converse` off the event loop and return `{"text": ...}`.

Error handling strategy:
- `DocuChatError` subclasses are mapped to JSON `{"error", "detail"}` bodies
  by one exception handler.
- Conversion failures are logged and answered with HTTP 500.
- Temporary-file cleanup never raises.

Side effects:
- Provider handles are built once in `create_app` and kept on `app.state`.
- Writes uploads and conversion outputs under `UPLOAD_DIR`.
"""

import json
import asyncio
import logging
from typing import Any, List, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from docuchat import __version__
from docuchat.api.multimodal import file_input_manager
from docuchat.api.multimodal.file_input_manager import (
    classify_file,
    remove_quietly,
    save_upload,
)
from docuchat.convert.converters import (
    docx_to_pdf,
    download_name,
    images_to_pdf,
    pdf_to_docx,
    plain_to_pdf,
)
from docuchat.llm.errors import DocuChatError, EmptyRequest
from docuchat.llm.message_types import DocumentText
from docuchat.llm.provider_config import load_settings
from docuchat.llm.providers import build_providers
from docuchat.llm.service import DEFAULT_ANALYSIS_QUESTION, analyze, converse


logger = logging.getLogger(__name__)

MAX_CHAT_FILES = 10
MAX_IMAGE_FILES = 50

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MEDIA_TYPE = "application/pdf"


# ============================================================
# Request Schemas
# ============================================================

class ChatRequest(BaseModel):
    provider: str = "openai"
    prompt: str = ""
    history: List[Any] = Field(default_factory=list)


class TextToPdfRequest(BaseModel):
    text: str = ""


# ============================================================
# Upload Helpers
# ============================================================

async def _read_upload(upload: UploadFile) -> bytes:
    data = await upload.read()
    if len(data) > file_input_manager.MAX_FILE_SIZE_BYTES:
        raise DocuChatError(
            "File exceeds max size limit",
            detail=f"{upload.filename} is larger than {file_input_manager.MAX_FILE_SIZE_MB} MB",
            status_code=413,
        )
    return data


async def _save(upload: UploadFile) -> str:
    data = await _read_upload(upload)
    return await asyncio.to_thread(save_upload, data, upload.filename or "")


async def _collect_attachments(files: List[UploadFile]):
    """Classify uploads one by one; each temp file is deleted right after use."""
    images = []
    documents = []

    for upload in files:
        filename = upload.filename or "file"
        path = await _save(upload)
        try:
            item = await asyncio.to_thread(classify_file, path, filename, upload.content_type)
        finally:
            remove_quietly(path)

        if isinstance(item, DocumentText):
            documents.append(item)
        else:
            images.append(item)

    return images, documents


def _check_file_count(files: List[UploadFile], limit: int) -> None:
    if len(files) > limit:
        raise DocuChatError("Too many files", detail=f"At most {limit} files are accepted")


def _parse_history_field(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        history = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring unparsable history field")
        return []
    return history if isinstance(history, list) else []


def _conversion_failed(err: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": "Conversion failed", "detail": str(err) or err.__class__.__name__},
    )


def _download(out_path, media_type: str, *cleanup_paths) -> FileResponse:
    """Stream `out_path` and remove it plus any inputs once the response is sent."""
    paths = [out_path, *cleanup_paths]

    def cleanup():
        for path in paths:
            remove_quietly(path)

    return FileResponse(
        str(out_path),
        media_type=media_type,
        filename=download_name(out_path),
        background=BackgroundTask(cleanup),
    )


# ============================================================
# Application Factory
# ============================================================

def create_app(providers=None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        providers: Provider handles keyed by id. When omitted they are built
            from the environment via `load_settings()`.
    """
    app = FastAPI(title="docuchat", version=__version__)
    app.state.providers = providers if providers is not None else build_providers(load_settings())

    @app.exception_handler(DocuChatError)
    async def handle_docuchat_error(request: Request, exc: DocuChatError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True}

    # ------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------

    @app.post("/api/chat")
    async def chat(payload: ChatRequest, request: Request) -> dict:
        reply = await asyncio.to_thread(
            converse,
            request.app.state.providers,
            payload.provider,
            payload.prompt,
            payload.history,
        )
        return {"text": reply.text}

    @app.post("/api/chat-with-files")
    async def chat_with_files(
        request: Request,
        provider: str = Form("openai"),
        prompt: str = Form(""),
        history: Optional[str] = Form(None),
        files: Optional[List[UploadFile]] = File(None),
    ) -> dict:
        files = files or []
        _check_file_count(files, MAX_CHAT_FILES)
        if not prompt.strip() and not files:
            raise EmptyRequest()

        images, documents = await _collect_attachments(files)
        reply = await asyncio.to_thread(
            converse,
            request.app.state.providers,
            provider,
            prompt,
            _parse_history_field(history),
            images,
            documents,
        )
        return {"text": reply.text}

    @app.post("/api/analyze")
    async def analyze_files(
        request: Request,
        provider: str = Form("openai"),
        question: str = Form(DEFAULT_ANALYSIS_QUESTION),
        files: Optional[List[UploadFile]] = File(None),
    ) -> dict:
        files = files or []
        if not files:
            raise EmptyRequest("No files uploaded")
        _check_file_count(files, MAX_CHAT_FILES)

        images, documents = await _collect_attachments(files)
        reply = await asyncio.to_thread(
            analyze,
            request.app.state.providers,
            provider,
            question,
            images,
            documents,
        )
        return {"text": reply.text}

    # ------------------------------------------------------------
    # Converters
    # ------------------------------------------------------------

    @app.post("/api/convert/pdf-to-docx")
    async def convert_pdf_to_docx(file: Optional[UploadFile] = File(None)):
        if file is None:
            return JSONResponse(status_code=400, content={"error": "No PDF uploaded"})

        in_path = await _save(file)
        try:
            out_path = await asyncio.to_thread(
                pdf_to_docx, in_path, file.filename or "file.pdf", file_input_manager.UPLOAD_DIR
            )
        except Exception as err:
            logger.exception("PDF to DOCX conversion failed")
            remove_quietly(in_path)
            return _conversion_failed(err)
        return _download(out_path, DOCX_MEDIA_TYPE, in_path)

    @app.post("/api/convert/docx-to-pdf")
    async def convert_docx_to_pdf(file: Optional[UploadFile] = File(None)):
        if file is None:
            return JSONResponse(status_code=400, content={"error": "No DOCX uploaded"})

        in_path = await _save(file)
        try:
            out_path = await asyncio.to_thread(
                docx_to_pdf, in_path, file.filename or "file.docx", file_input_manager.UPLOAD_DIR
            )
        except Exception as err:
            logger.exception("DOCX to PDF conversion failed")
            remove_quietly(in_path)
            return _conversion_failed(err)
        return _download(out_path, PDF_MEDIA_TYPE, in_path)

    @app.post("/api/convert/images-to-pdf")
    async def convert_images_to_pdf(files: Optional[List[UploadFile]] = File(None)):
        files = files or []
        if not files:
            return JSONResponse(status_code=400, content={"error": "No images uploaded"})
        _check_file_count(files, MAX_IMAGE_FILES)

        in_paths = []
        try:
            for upload in files:
                in_paths.append(await _save(upload))
            out_path = await asyncio.to_thread(
                images_to_pdf, in_paths, file_input_manager.UPLOAD_DIR
            )
        except DocuChatError:
            for path in in_paths:
                remove_quietly(path)
            raise
        except Exception as err:
            logger.exception("Images to PDF conversion failed")
            for path in in_paths:
                remove_quietly(path)
            return _conversion_failed(err)
        return _download(out_path, PDF_MEDIA_TYPE, *in_paths)

    @app.post("/api/convert/text-to-pdf")
    async def convert_text_to_pdf(payload: TextToPdfRequest):
        try:
            out_path = await asyncio.to_thread(
                plain_to_pdf, payload.text, file_input_manager.UPLOAD_DIR
            )
        except Exception as err:
            logger.exception("Text to PDF conversion failed")
            return _conversion_failed(err)
        return _download(out_path, PDF_MEDIA_TYPE)

    return app
