from __future__ import annotations

from pathlib import Path

import pytest

from formstamp.pdf.fonts import FontLibrary, clear_font_cache, load_font_bytes, standard_font_name


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_font_cache()
    yield
    clear_font_cache()


def test_standard_font_names() -> None:
    assert standard_font_name("Inter") == "Helvetica"
    assert standard_font_name("Times", bold=True, italic=True) == "Times-BoldItalic"
    assert standard_font_name("courier new", italic=True) == "Courier-Oblique"
    assert standard_font_name("Comic Sans", bold=True) == "Helvetica-Bold"


def test_library_without_directory_uses_base14() -> None:
    source = FontLibrary().resolve("Roboto", bold=True)

    assert source.is_standard
    assert source.name == "Helvetica-Bold"


def test_library_prefers_font_file(tmp_path: Path) -> None:
    (tmp_path / "Inter-Regular.ttf").write_bytes(b"regular-bytes")
    (tmp_path / "Inter-Bold.ttf").write_bytes(b"bold-bytes")
    library = FontLibrary(tmp_path)

    bold = library.resolve("Inter", bold=True)
    italic = library.resolve("Inter", italic=True)

    assert (bold.name, bold.data) == ("Inter-Bold", b"bold-bytes")
    assert (italic.name, italic.data) == ("Inter-Regular", b"regular-bytes")
    assert library.resolve("Times").name == "Times-Roman"


def test_font_bytes_are_cached(tmp_path: Path) -> None:
    path = tmp_path / "Inter-Regular.ttf"
    path.write_bytes(b"first")
    assert load_font_bytes(path) == b"first"

    path.write_bytes(b"second")

    assert load_font_bytes(path) == b"first"
    clear_font_cache()
    assert load_font_bytes(path) == b"second"
