"""Font resolution and process-wide font byte cache."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import threading

from formstamp.config import BASE14_ALIASES, BASE14_FAMILIES, DEFAULT_FONT_FAMILY

logger = logging.getLogger(__name__)

_VARIANT_SUFFIXES = {
    (False, False): ("Regular",),
    (True, False): ("Bold", "Regular"),
    (False, True): ("Italic", "Regular"),
    (True, True): ("BoldItalic", "Bold", "Italic", "Regular"),
}
_FONT_FILE_TYPES = (".ttf", ".otf")

# Font files never change while the process runs, so their bytes are shared
# by every document instance. Embedding still happens per instance.
_font_bytes: dict[Path, bytes] = {}
_font_bytes_lock = threading.Lock()


class FontLoadError(RuntimeError):
    """Raised when a font file cannot be read."""


@dataclass(frozen=True, slots=True)
class FontSource:
    name: str
    data: bytes | None = None

    @property
    def is_standard(self) -> bool:
        return self.data is None


def load_font_bytes(path: Path) -> bytes:
    with _font_bytes_lock:
        cached = _font_bytes.get(path)
        if cached is not None:
            return cached
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise FontLoadError(f"Failed to read font file: {path}") from exc
        _font_bytes[path] = data
        logger.info("Loaded font %s (%d bytes)", path.name, len(data))
        return data


def clear_font_cache() -> None:
    with _font_bytes_lock:
        _font_bytes.clear()


def standard_font_name(family: str, bold: bool = False, italic: bool = False) -> str:
    base = BASE14_ALIASES.get(family.strip().lower(), "Helvetica")
    return BASE14_FAMILIES[base][(bold, italic)]


class FontLibrary:
    """Resolve a family/weight/slant triple to something the writer can embed.

    TrueType files are looked up as ``<Family>-<Variant>.ttf`` (or ``.otf``) in
    the configured fonts directory. Families without a file fall back to the
    matching base-14 font so text is always drawable.
    """

    def __init__(self, fonts_dir: Path | None = None) -> None:
        self._fonts_dir = fonts_dir

    def resolve(self, family: str | None, bold: bool = False, italic: bool = False) -> FontSource:
        family = (family or DEFAULT_FONT_FAMILY).strip() or DEFAULT_FONT_FAMILY
        font_path = self._find_font_file(family, bold, italic)
        if font_path is None:
            return FontSource(name=standard_font_name(family, bold, italic))
        return FontSource(name=font_path.stem, data=load_font_bytes(font_path))

    def _find_font_file(self, family: str, bold: bool, italic: bool) -> Path | None:
        if self._fonts_dir is None or not self._fonts_dir.is_dir():
            return None
        compact = family.replace(" ", "")
        for variant in _VARIANT_SUFFIXES[(bold, italic)]:
            for suffix in _FONT_FILE_TYPES:
                candidate = self._fonts_dir / f"{compact}-{variant}{suffix}"
                if candidate.is_file():
                    return candidate
        return None
