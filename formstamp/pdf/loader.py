"""Template loading helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import fitz

from formstamp.model.document import TemplateDocument

logger = logging.getLogger(__name__)


class PdfLoadError(RuntimeError):
    """Raised when a template PDF cannot be opened."""


def open_pdf_handle(data: bytes, label: str = "<memory>") -> fitz.Document:
    try:
        handle = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise PdfLoadError(f"Failed to open PDF: {label}") from exc

    # Templates protected only by an owner password open with an empty user
    # password; anything else is unreadable for preview purposes.
    if handle.needs_pass and not handle.authenticate(""):
        handle.close()
        raise PdfLoadError(f"PDF requires a password: {label}")
    if handle.page_count == 0:
        handle.close()
        raise PdfLoadError(f"PDF has no pages: {label}")
    return handle


def load_template(path: str | Path) -> TemplateDocument:
    source_path = Path(path)
    if not source_path.exists():
        raise PdfLoadError(f"File not found: {source_path}")
    if source_path.suffix.lower() != ".pdf":
        raise PdfLoadError(f"Not a PDF file: {source_path}")

    try:
        data = source_path.read_bytes()
    except OSError as exc:
        raise PdfLoadError(f"Failed to read PDF: {source_path}") from exc

    handle = open_pdf_handle(data, str(source_path))
    logger.info("Loaded template %s (%d page(s))", source_path.name, handle.page_count)
    return TemplateDocument(path=source_path, data=data, handle=handle)
