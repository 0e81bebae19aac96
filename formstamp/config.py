"""Shared configuration and constants."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

# Converts a font's full ascent metric into the baseline offset used when
# stamping text. Empirical; keep the exact value unless reference output
# shows otherwise.
BASELINE_ASCENT_FACTOR = 0.8

DEFAULT_FONT_SIZE = 12.0
DEFAULT_FILL = "#000000"
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_TEXT_WIDTH = 150.0
# Line height multiplier applied to the font size for a fresh text field.
DEFAULT_LINE_HEIGHT = 1.16
DEFAULT_CODE_SIZE = 80.0

SUPPORTED_FONTS = ("Inter", "Roboto", "Arial", "Times", "Courier")

# Base-14 fallbacks keyed by family, then (bold, italic).
BASE14_FAMILIES = {
    "Helvetica": {
        (False, False): "Helvetica",
        (True, False): "Helvetica-Bold",
        (False, True): "Helvetica-Oblique",
        (True, True): "Helvetica-BoldOblique",
    },
    "Times": {
        (False, False): "Times-Roman",
        (True, False): "Times-Bold",
        (False, True): "Times-Italic",
        (True, True): "Times-BoldItalic",
    },
    "Courier": {
        (False, False): "Courier",
        (True, False): "Courier-Bold",
        (False, True): "Courier-Oblique",
        (True, True): "Courier-BoldOblique",
    },
}
BASE14_ALIASES = {
    "inter": "Helvetica",
    "roboto": "Helvetica",
    "arial": "Helvetica",
    "helvetica": "Helvetica",
    "times": "Times",
    "times new roman": "Times",
    "courier": "Courier",
    "courier new": "Courier",
}

PREVIEW_ZOOM = 2.0
QR_IMAGE_PIXELS = 400
QR_BORDER_MODULES = 4
QR_ERROR_LEVEL = "M"

DEFAULT_ARCHIVE_BASE_NAME = "document"
ARCHIVE_INDEX_WIDTH = 3

MAX_TABULAR_BYTES = 10 * 1024 * 1024
TABULAR_SUFFIXES = (".xlsx", ".xls", ".csv")

ENV_PREFIX = "FORMSTAMP_"


@dataclass(slots=True)
class Settings:
    fonts_dir: Path | None = None
    preview_zoom: float = PREVIEW_ZOOM
    baseline_factor: float = BASELINE_ASCENT_FACTOR
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        settings = cls()

        fonts_dir = env.get(f"{ENV_PREFIX}FONTS_DIR")
        if fonts_dir:
            settings.fonts_dir = Path(fonts_dir)

        zoom = env.get(f"{ENV_PREFIX}PREVIEW_ZOOM")
        if zoom:
            settings.preview_zoom = _positive_float(zoom, PREVIEW_ZOOM)

        factor = env.get(f"{ENV_PREFIX}BASELINE_FACTOR")
        if factor:
            settings.baseline_factor = _positive_float(factor, BASELINE_ASCENT_FACTOR)

        level = env.get(f"{ENV_PREFIX}LOG_LEVEL")
        if level:
            settings.log_level = level.strip().upper()
        return settings


def _positive_float(raw: str, fallback: float) -> float:
    try:
        value = float(raw)
    except ValueError:
        return fallback
    return value if value > 0 else fallback
