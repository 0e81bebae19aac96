"""Page preview rendering helpers using PyMuPDF."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
import logging

import fitz

from formstamp.config import PREVIEW_ZOOM
from formstamp.pdf.loader import open_pdf_handle
from formstamp.state.cancellation import CancellationToken

logger = logging.getLogger(__name__)


class PdfRenderError(RuntimeError):
    """Raised when a page cannot be rendered."""


@dataclass(frozen=True, slots=True)
class PagePreview:
    page_number: int
    image_png: bytes
    width: int
    height: int


def render_page_preview(
    document: fitz.Document,
    page_index: int,
    zoom: float = PREVIEW_ZOOM,
) -> PagePreview:
    if page_index < 0 or page_index >= document.page_count:
        raise PdfRenderError(f"Page index out of range: {page_index}")

    try:
        page = document.load_page(page_index)
        matrix = fitz.Matrix(zoom, zoom)
        pix = page.get_pixmap(matrix=matrix, alpha=False, annots=False)
        image_png = pix.tobytes("png")
    except Exception as exc:  # pragma: no cover - defensive for PyMuPDF errors
        raise PdfRenderError(f"Failed to render page {page_index + 1}") from exc

    return PagePreview(
        page_number=page_index + 1,
        image_png=image_png,
        width=pix.width,
        height=pix.height,
    )


def iter_page_previews(
    document: fitz.Document,
    token: CancellationToken,
    zoom: float = PREVIEW_ZOOM,
) -> Iterator[PagePreview]:
    """Yield one preview per page, checking the token around every page.

    A page that fails to render is logged and skipped; iteration stops with
    ``PreviewCancelled`` as soon as the token is cancelled.
    """
    for page_index in range(document.page_count):
        token.raise_if_cancelled()
        try:
            preview = render_page_preview(document, page_index, zoom=zoom)
        except PdfRenderError:
            logger.warning("Page %d could not be rendered; skipping preview", page_index + 1)
            continue
        token.raise_if_cancelled()
        yield preview


class PreviewContext:
    """Rasterization context owned by one placement surface.

    Holds its own PyMuPDF handle opened from the template bytes; ``close``
    releases it when the surface is disposed.
    """

    def __init__(self, data: bytes, zoom: float = PREVIEW_ZOOM) -> None:
        self._handle = open_pdf_handle(data, "<preview>")
        self._zoom = zoom

    @property
    def page_count(self) -> int:
        return self._handle.page_count

    @property
    def closed(self) -> bool:
        return self._handle.is_closed

    def previews(self, token: CancellationToken) -> Iterator[PagePreview]:
        return iter_page_previews(self._handle, token, zoom=self._zoom)

    def close(self) -> None:
        if not self._handle.is_closed:
            self._handle.close()
