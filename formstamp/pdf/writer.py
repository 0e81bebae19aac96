"""Per-row document writer using reportlab overlay canvases + pypdf."""

from __future__ import annotations

from io import BytesIO
import logging

from pypdf import PdfReader, PdfWriter, Transformation
from pypdf import PasswordType
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from formstamp.model.field import PageSize
from formstamp.pdf.fonts import FontSource

logger = logging.getLogger(__name__)


class TemplateOpenError(RuntimeError):
    """Raised when a template instance cannot be opened."""


class PdfWriteError(RuntimeError):
    """Raised when a document instance cannot be drawn on or serialized."""


class FontHandle:
    def __init__(self, name: str) -> None:
        self.name = name

    def ascent_at(self, size: float) -> float:
        # Full font height (ascender to descender) at the given size.
        ascent, descent = pdfmetrics.getAscentDescent(self.name, size)
        return ascent - descent

    def width_of(self, text: str, size: float) -> float:
        return pdfmetrics.stringWidth(text, self.name, size)


class TemplatePage:
    def __init__(self, instance: TemplateInstance, index: int) -> None:
        self._instance = instance
        self._index = index

    def native_size(self) -> PageSize:
        box = self._instance.reader.pages[self._index].mediabox
        return PageSize(width=float(box.width), height=float(box.height))

    def draw_text(
        self,
        value: str,
        x: float,
        y: float,
        font: FontHandle,
        size: float,
        color_rgb: tuple[float, float, float],
        rotation: float = 0.0,
    ) -> None:
        overlay = self._instance.overlay_for(self._index)
        overlay.saveState()
        overlay.setFillColorRGB(*color_rgb)
        overlay.setFont(font.name, size)
        overlay.translate(x, y)
        if rotation:
            overlay.rotate(rotation)
        overlay.drawString(0, 0, value)
        overlay.restoreState()

    def draw_image(
        self,
        image: bytes,
        x: float,
        y: float,
        width: float,
        height: float,
        rotation: float = 0.0,
    ) -> None:
        overlay = self._instance.overlay_for(self._index)
        reader = ImageReader(BytesIO(image))
        overlay.saveState()
        # Rotate around the top-left corner, matching the editor.
        overlay.translate(x, y + height)
        if rotation:
            overlay.rotate(rotation)
        overlay.drawImage(reader, 0, -height, width=width, height=height, mask="auto")
        overlay.restoreState()


class TemplateInstance:
    """One independent, mutable copy of the template.

    Drawing goes to a lazily created reportlab canvas per page; ``serialize``
    merges those overlays onto the template pages and writes the result.
    """

    def __init__(self, reader: PdfReader) -> None:
        self.reader = reader
        self._overlays: dict[int, tuple[BytesIO, canvas.Canvas]] = {}
        self._fonts: dict[str, FontHandle] = {}

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    def page(self, page_number: int) -> TemplatePage:
        index = page_number - 1
        if index < 0 or index >= self.page_count:
            raise IndexError(f"Page {page_number} out of range (1-{self.page_count})")
        return TemplatePage(self, index)

    def embed_font(self, source: FontSource) -> FontHandle:
        handle = self._fonts.get(source.name)
        if handle is not None:
            return handle
        if not source.is_standard and source.name not in pdfmetrics.getRegisteredFontNames():
            pdfmetrics.registerFont(TTFont(source.name, BytesIO(source.data)))
        handle = FontHandle(source.name)
        self._fonts[source.name] = handle
        return handle

    def overlay_for(self, index: int) -> canvas.Canvas:
        entry = self._overlays.get(index)
        if entry is None:
            size = self.page(index + 1).native_size()
            buffer = BytesIO()
            overlay = canvas.Canvas(buffer, pagesize=(size.width, size.height))
            entry = (buffer, overlay)
            self._overlays[index] = entry
        return entry[1]

    def serialize(self) -> bytes:
        try:
            writer = PdfWriter()
            for page in self.reader.pages:
                writer.add_page(page)

            for index, (buffer, overlay) in sorted(self._overlays.items()):
                overlay.showPage()
                overlay.save()
                buffer.seek(0)
                overlay_page = PdfReader(buffer).pages[0]
                target = writer.pages[index]
                box = target.mediabox
                target.merge_transformed_page(
                    overlay_page,
                    Transformation().translate(float(box.left), float(box.bottom)),
                )

            output = BytesIO()
            writer.write(output)
        except Exception as exc:
            raise PdfWriteError("Failed to serialize document") from exc
        finally:
            self._overlays.clear()
        return output.getvalue()


def open_template_instance(data: bytes) -> TemplateInstance:
    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            # Owner-only protection: an empty user password unlocks it.
            if reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                raise TemplateOpenError("Template is protected by a user password")
        page_count = len(reader.pages)
    except TemplateOpenError:
        raise
    except Exception as exc:
        raise TemplateOpenError("Failed to open template") from exc

    if page_count == 0:
        raise TemplateOpenError("Template has no pages")
    return TemplateInstance(reader)
