"""QR code image generation.

The symbol is laid out by reportlab's QR widget and rasterized by PyMuPDF so
the writer receives plain PNG bytes.
"""

from __future__ import annotations

import fitz
from reportlab.graphics import renderPDF
from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing

from formstamp.config import QR_BORDER_MODULES, QR_ERROR_LEVEL, QR_IMAGE_PIXELS


class CodeRenderError(RuntimeError):
    """Raised when a value cannot be rendered as a QR code."""


def render_qr_png(
    value: str,
    size_pixels: int = QR_IMAGE_PIXELS,
    level: str = QR_ERROR_LEVEL,
) -> bytes:
    if not value:
        raise CodeRenderError("Cannot encode an empty value")

    try:
        widget = QrCodeWidget(value, barLevel=level, barBorder=QR_BORDER_MODULES)
        x0, y0, x1, y1 = widget.getBounds()
        width = x1 - x0
        height = y1 - y0
        drawing = Drawing(width, height)
        drawing.add(widget)
        symbol_pdf = renderPDF.drawToString(drawing)

        zoom = size_pixels / max(width, height)
        with fitz.open(stream=symbol_pdf, filetype="pdf") as symbol:
            pix = symbol.load_page(0).get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            return pix.tobytes("png")
    except Exception as exc:
        raise CodeRenderError(f"Failed to render QR code for value: {value!r}") from exc
