"""Batch synthesis: one stamped copy of the template per dataset row."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
import logging
import math
import re

from formstamp.config import BASELINE_ASCENT_FACTOR
from formstamp.model.dataset import DatasetRow, resolve_value
from formstamp.model.field import FieldPlacement, TextAlign
from formstamp.pdf.codes import render_qr_png
from formstamp.pdf.fonts import FontLibrary
from formstamp.pdf.transform import to_native_box, to_native_geometry
from formstamp.pdf.writer import FontHandle, TemplateInstance, open_template_instance
from formstamp.state.store import FinalizedLayout

logger = logging.getLogger(__name__)

OpenDocument = Callable[[bytes], TemplateInstance]
RenderCode = Callable[[str], bytes]
Progress = Callable[[int, int], None]

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


class FieldSkipped(RuntimeError):
    """Raised when a field cannot be placed for the current row."""


@dataclass(frozen=True, slots=True)
class RowFailure:
    row_number: int
    reason: str


@dataclass(frozen=True, slots=True)
class FieldFailure:
    row_number: int
    field_id: str
    column_name: str
    reason: str


@dataclass(slots=True)
class SynthesisResult:
    row_count: int = 0
    documents: list[bytes] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)
    field_failures: list[FieldFailure] = field(default_factory=list)

    @property
    def produced_count(self) -> int:
        return len(self.documents)


def hex_to_rgb(value: str | None) -> tuple[float, float, float]:
    match = _HEX_COLOR.match((value or "").strip())
    if match is None:
        return 0.0, 0.0, 0.0
    red, green, blue = (int(part, 16) / 255 for part in match.groups())
    return red, green, blue


class BatchSynthesizer:
    def __init__(
        self,
        open_document: OpenDocument = open_template_instance,
        render_code: RenderCode = render_qr_png,
        fonts: FontLibrary | None = None,
        baseline_factor: float = BASELINE_ASCENT_FACTOR,
    ) -> None:
        self._open_document = open_document
        self._render_code = render_code
        self._fonts = fonts or FontLibrary()
        self._baseline_factor = baseline_factor

    def run(
        self,
        template_bytes: bytes,
        rows: Sequence[DatasetRow],
        layout: FinalizedLayout,
        progress: Progress | None = None,
    ) -> SynthesisResult:
        result = SynthesisResult(row_count=len(rows))
        logger.info(
            "Synthesis starting: %d row(s), %d field(s), %d template byte(s)",
            len(rows),
            len(layout.fields),
            len(template_bytes),
        )

        for row_number, row in enumerate(rows, start=1):
            try:
                document = self._synthesize_row(template_bytes, row, row_number, layout, result)
            except Exception as exc:
                logger.error("Row %d skipped: %s", row_number, exc, exc_info=True)
                result.failures.append(RowFailure(row_number=row_number, reason=str(exc)))
            else:
                result.documents.append(document)
                logger.debug("Row %d produced %d byte(s)", row_number, len(document))
            if progress is not None:
                progress(row_number, len(rows))

        logger.info(
            "Synthesis finished: %d of %d document(s) produced",
            result.produced_count,
            result.row_count,
        )
        return result

    def _synthesize_row(
        self,
        template_bytes: bytes,
        row: DatasetRow,
        row_number: int,
        layout: FinalizedLayout,
        result: SynthesisResult,
    ) -> bytes:
        # Every row starts from the pristine template bytes.
        instance = self._open_document(template_bytes)
        fonts: dict[tuple[str, bool, bool], FontHandle] = {}

        for placement in layout.fields:
            try:
                self._apply_field(instance, placement, row, layout, fonts)
            except FieldSkipped as exc:
                logger.warning("Row %d, field %s skipped: %s", row_number, placement.column_name, exc)
                result.field_failures.append(_field_failure(row_number, placement, exc))
            except Exception as exc:
                logger.error(
                    "Row %d, field %s failed: %s",
                    row_number,
                    placement.column_name,
                    exc,
                    exc_info=True,
                )
                result.field_failures.append(_field_failure(row_number, placement, exc))

        return instance.serialize()

    def _apply_field(
        self,
        instance: TemplateInstance,
        placement: FieldPlacement,
        row: DatasetRow,
        layout: FinalizedLayout,
        fonts: dict[tuple[str, bool, bool], FontHandle],
    ) -> None:
        if placement.page_number < 1 or placement.page_number > instance.page_count:
            raise FieldSkipped(
                f"page {placement.page_number} is outside the template (1-{instance.page_count})"
            )
        preview_size = layout.preview_sizes.get(placement.page_number)
        if preview_size is None:
            raise FieldSkipped(f"no preview size recorded for page {placement.page_number}")

        value = resolve_value(row, placement.column_name)
        if not value:
            logger.debug("Empty value for %s; nothing to draw", placement.column_name)
            return

        page = instance.page(placement.page_number)
        native_size = page.native_size()

        if placement.is_code:
            box = to_native_box(placement, preview_size, native_size)
            image = self._render_code(value)
            page.draw_image(image, box.x, box.y, box.width, box.height, box.rotation)
            return

        font = self._font_for(instance, placement, fonts)
        geometry = to_native_geometry(
            placement,
            preview_size,
            native_size,
            font.ascent_at,
            self._baseline_factor,
        )
        x, y = geometry.x, geometry.y
        if placement.text_align is not TextAlign.LEFT:
            x, y = _aligned_origin(
                placement,
                value,
                font,
                geometry.font_size,
                geometry.scale_factor,
                geometry.rotation,
                (x, y),
            )
        page.draw_text(
            value,
            x,
            y,
            font,
            geometry.font_size,
            hex_to_rgb(placement.fill),
            geometry.rotation,
        )

    def _font_for(
        self,
        instance: TemplateInstance,
        placement: FieldPlacement,
        fonts: dict[tuple[str, bool, bool], FontHandle],
    ) -> FontHandle:
        key = (placement.font_family, placement.is_bold, placement.is_italic)
        handle = fonts.get(key)
        if handle is None:
            source = self._fonts.resolve(*key)
            handle = instance.embed_font(source)
            fonts[key] = handle
        return handle


def synthesize_documents(
    template_bytes: bytes,
    rows: Sequence[DatasetRow],
    layout: FinalizedLayout,
    fonts: FontLibrary | None = None,
    baseline_factor: float = BASELINE_ASCENT_FACTOR,
    progress: Progress | None = None,
) -> SynthesisResult:
    synthesizer = BatchSynthesizer(fonts=fonts, baseline_factor=baseline_factor)
    return synthesizer.run(template_bytes, rows, layout, progress=progress)


def _aligned_origin(
    placement: FieldPlacement,
    value: str,
    font: FontHandle,
    font_size: float,
    scale_factor: float,
    rotation: float,
    origin: tuple[float, float],
) -> tuple[float, float]:
    box_width = placement.display_width * scale_factor
    slack = box_width - font.width_of(value, font_size)
    offset = slack / 2 if placement.text_align is TextAlign.CENTER else slack
    radians = math.radians(rotation)
    return origin[0] + offset * math.cos(radians), origin[1] + offset * math.sin(radians)


def _field_failure(row_number: int, placement: FieldPlacement, exc: Exception) -> FieldFailure:
    return FieldFailure(
        row_number=row_number,
        field_id=placement.id,
        column_name=placement.column_name,
        reason=str(exc),
    )
