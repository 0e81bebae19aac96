"""Editor-space to PDF-space geometry conversion.

Editor coordinates are surface pixels with the origin at the top-left of the
previewed page and Y growing downward. Native coordinates are PDF points with
the origin at the bottom-left and Y growing upward. A page's preview is
assumed to be a uniform scale of the native page, so a single factor derived
from the widths converts both axes.

Rotation flips sign: the editor measures clockwise, the PDF writer measures
counter-clockwise.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from formstamp.config import BASELINE_ASCENT_FACTOR
from formstamp.model.field import FieldPlacement, PageSize, PreviewSize

FontAscent = Callable[[float], float]


@dataclass(frozen=True, slots=True)
class NativeGeometry:
    x: float
    y: float
    font_size: float
    rotation: float
    scale_factor: float


@dataclass(frozen=True, slots=True)
class NativeBox:
    x: float
    y: float
    width: float
    height: float
    rotation: float


def scale_factor_for(preview_size: PreviewSize, native_size: PageSize) -> float:
    if preview_size.width <= 0:
        raise ValueError(f"Preview width must be positive, got {preview_size.width}")
    return native_size.width / preview_size.width


def to_native_geometry(
    field: FieldPlacement,
    preview_size: PreviewSize,
    native_size: PageSize,
    font_ascent: FontAscent,
    baseline_factor: float = BASELINE_ASCENT_FACTOR,
) -> NativeGeometry:
    scale_factor = scale_factor_for(preview_size, native_size)
    font_size = field.font_size * (field.scale_x or 1.0) * scale_factor
    x = field.x * scale_factor
    y = native_size.height - (field.y * scale_factor) - font_ascent(font_size) * baseline_factor
    return NativeGeometry(
        x=x,
        y=y,
        font_size=font_size,
        rotation=-(field.rotation or 0.0),
        scale_factor=scale_factor,
    )


def to_native_box(
    field: FieldPlacement,
    preview_size: PreviewSize,
    native_size: PageSize,
) -> NativeBox:
    """Native rectangle for fields drawn as images; ``y`` is the bottom edge."""
    scale_factor = scale_factor_for(preview_size, native_size)
    width = field.width * (field.scale_x or 1.0) * scale_factor
    height = field.height * (field.scale_y or 1.0) * scale_factor
    top = native_size.height - field.y * scale_factor
    return NativeBox(
        x=field.x * scale_factor,
        y=top - height,
        width=width,
        height=height,
        rotation=-(field.rotation or 0.0),
    )
