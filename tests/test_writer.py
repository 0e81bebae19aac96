from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader, PdfWriter
from reportlab.lib.pagesizes import A4, letter

from formstamp.model.field import FieldPlacement, PageSize, PreviewSize
from formstamp.pdf.codes import render_qr_png
from formstamp.pdf.fonts import FontSource
from formstamp.pdf.synthesis import synthesize_documents
from formstamp.pdf.writer import TemplateOpenError, open_template_instance
from formstamp.state.store import FinalizedLayout

from conftest import build_pdf


def _page_text(data: bytes, index: int = 0) -> str:
    return PdfReader(BytesIO(data)).pages[index].extract_text()


def _image_xobjects(data: bytes, index: int = 0) -> list:
    page = PdfReader(BytesIO(data)).pages[index]
    resources = page.get("/Resources")
    if resources is None:
        return []
    xobjects = resources.get_object().get("/XObject")
    if xobjects is None:
        return []
    xobjects = xobjects.get_object()
    return [
        name
        for name in xobjects
        if xobjects[name].get_object().get("/Subtype") == "/Image"
    ]


def test_instance_reports_native_sizes(pdf_factory) -> None:
    instance = open_template_instance(pdf_factory([letter, A4]))

    assert instance.page_count == 2
    assert instance.page(1).native_size() == PageSize(float(letter[0]), float(letter[1]))
    assert instance.page(2).native_size() == PageSize(float(A4[0]), float(A4[1]))
    with pytest.raises(IndexError):
        instance.page(3)


def test_draw_text_and_serialize(template_bytes: bytes) -> None:
    instance = open_template_instance(template_bytes)
    font = instance.embed_font(FontSource(name="Helvetica"))

    instance.page(2).draw_text("Stamped Value", 72.0, 500.0, font, 14.0, (0.0, 0.0, 1.0))
    output = instance.serialize()

    assert "Stamped Value" in _page_text(output, 1)
    assert "Stamped Value" not in _page_text(output, 0)
    assert "Template page 1" in _page_text(output, 0)


def test_font_handle_metrics() -> None:
    instance = open_template_instance(_single_page())
    font = instance.embed_font(FontSource(name="Helvetica"))

    assert font.ascent_at(10.0) > 0
    assert font.ascent_at(20.0) == pytest.approx(font.ascent_at(10.0) * 2)
    assert font.width_of("abc", 10.0) > 0
    assert instance.embed_font(FontSource(name="Helvetica")) is font


def test_draw_image(template_bytes: bytes) -> None:
    instance = open_template_instance(template_bytes)

    instance.page(1).draw_image(render_qr_png("hello"), 100.0, 100.0, 80.0, 80.0)
    output = instance.serialize()

    assert len(_image_xobjects(output, 0)) == 1


def test_template_bytes_are_not_mutated(template_bytes: bytes) -> None:
    original = bytes(template_bytes)
    instance = open_template_instance(template_bytes)
    font = instance.embed_font(FontSource(name="Helvetica"))
    instance.page(1).draw_text("Once", 72.0, 72.0, font, 12.0, (0.0, 0.0, 0.0))
    instance.serialize()

    fresh = open_template_instance(template_bytes).serialize()

    assert template_bytes == original
    assert "Once" not in _page_text(fresh, 0)


def test_owner_password_only_template_opens() -> None:
    writer = PdfWriter(clone_from=PdfReader(BytesIO(_single_page())))
    writer.encrypt(user_password="", owner_password="owner-secret")
    buffer = BytesIO()
    writer.write(buffer)

    instance = open_template_instance(buffer.getvalue())
    font = instance.embed_font(FontSource(name="Helvetica"))
    instance.page(1).draw_text("Unlocked", 72.0, 72.0, font, 12.0, (0.0, 0.0, 0.0))

    assert "Unlocked" in _page_text(instance.serialize())


def test_user_password_template_is_rejected() -> None:
    writer = PdfWriter(clone_from=PdfReader(BytesIO(_single_page())))
    writer.encrypt(user_password="user-secret", owner_password="owner-secret")
    buffer = BytesIO()
    writer.write(buffer)

    with pytest.raises(TemplateOpenError):
        open_template_instance(buffer.getvalue())


def test_garbage_bytes_are_rejected() -> None:
    with pytest.raises(TemplateOpenError):
        open_template_instance(b"definitely not a pdf")


def test_end_to_end_synthesis(template_bytes: bytes) -> None:
    width, height = letter
    preview = PreviewSize(width / 2, height / 2)
    layout = FinalizedLayout(
        fields=(
            FieldPlacement(column_name="Name", page_number=1, x=50.0, y=60.0, width=150.0, height=14.0),
            FieldPlacement(
                column_name="Link",
                page_number=2,
                x=20.0,
                y=20.0,
                width=40.0,
                height=40.0,
                is_code=True,
            ),
        ),
        preview_sizes={1: preview, 2: preview},
    )
    rows = [
        {"Name": "Ada Lovelace", "Link": "https://example.com/ada"},
        {"Name": "Grace Hopper", "Link": ""},
    ]

    result = synthesize_documents(template_bytes, rows, layout)

    assert result.produced_count == 2
    assert result.failures == []
    assert "Ada Lovelace" in _page_text(result.documents[0], 0)
    assert "Grace Hopper" in _page_text(result.documents[1], 0)
    assert len(_image_xobjects(result.documents[0], 1)) == 1
    assert _image_xobjects(result.documents[1], 1) == []


def _single_page() -> bytes:
    return build_pdf([letter])
