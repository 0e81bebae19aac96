from __future__ import annotations

import logging

import pytest

from formstamp.model.field import FieldPlacement, FontWeight, PageSize, PreviewSize, TextAlign
from formstamp.pdf.synthesis import BatchSynthesizer, RowFailure, hex_to_rgb
from formstamp.state.store import FinalizedLayout

from conftest import FakeWriter


def _field(column: str, page: int = 1, **overrides) -> FieldPlacement:
    values = {
        "column_name": column,
        "page_number": page,
        "x": 30.0,
        "y": 40.0,
        "width": 150.0,
        "height": 14.0,
    }
    values.update(overrides)
    return FieldPlacement(**values)


def _layout(*fields: FieldPlacement, sizes: dict[int, PreviewSize] | None = None) -> FinalizedLayout:
    return FinalizedLayout(fields=fields, preview_sizes=sizes or {1: PreviewSize(300.0, 400.0)})


def _synthesizer(writer: FakeWriter, codes: list[str] | None = None) -> BatchSynthesizer:
    def render_code(value: str) -> bytes:
        if codes is not None:
            codes.append(value)
        return f"qr:{value}".encode("utf-8")

    return BatchSynthesizer(open_document=writer, render_code=render_code)


def test_each_row_opens_fresh_template(fake_writer: FakeWriter) -> None:
    rows = [{"Name": "Ada"}, {"Name": "Grace"}]

    result = _synthesizer(fake_writer).run(b"%PDF-template", rows, _layout(_field("Name")))

    assert fake_writer.opened_with == [b"%PDF-template", b"%PDF-template"]
    assert fake_writer.instances[0] is not fake_writer.instances[1]
    assert result.documents == [b"Ada", b"Grace"]
    assert [text["value"] for text in fake_writer.instances[1].pages[0].texts] == ["Grace"]


def test_text_geometry_matches_transform(fake_writer: FakeWriter) -> None:
    field = _field("Name", x=30.0, y=40.0, font_size=12.0, rotation=10.0, fill="#ff0000")

    _synthesizer(fake_writer).run(b"t", [{"Name": "Ada"}], _layout(field))

    text = fake_writer.instances[0].pages[0].texts[0]
    assert text["x"] == 60.0
    assert text["size"] == 24.0
    assert text["y"] == 800.0 - 80.0 - 24.0 * 0.8
    assert text["rotation"] == -10.0
    assert text["color"] == (1.0, 0.0, 0.0)


def test_empty_and_undefined_values_skip_only_that_field(fake_writer: FakeWriter) -> None:
    layout = _layout(_field("Name"), _field("City"), _field("Note"))
    rows = [
        {"Name": "Ada", "City": "", "Note": "undefined"},
        {"Name": "", "City": "Paris"},
    ]

    result = _synthesizer(fake_writer).run(b"t", rows, layout)

    assert result.documents == [b"Ada", b"Paris"]
    assert result.field_failures == []


def test_out_of_range_page_is_skipped_without_aborting_row(
    fake_writer: FakeWriter, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.WARNING, logger="formstamp.pdf.synthesis")
    layout = _layout(
        _field("Name", page=4),
        _field("City"),
        sizes={1: PreviewSize(300.0, 400.0), 4: PreviewSize(300.0, 400.0)},
    )

    result = _synthesizer(fake_writer).run(b"t", [{"Name": "Ada", "City": "Paris"}], layout)

    assert result.documents == [b"Paris"]
    assert result.failures == []
    assert [failure.column_name for failure in result.field_failures] == ["Name"]
    assert any("outside the template" in record.message for record in caplog.records)


def test_missing_preview_size_is_skipped() -> None:
    writer = FakeWriter(page_sizes=[PageSize(600.0, 800.0), PageSize(600.0, 800.0)])
    layout = _layout(_field("Name", page=2), _field("City"))

    result = _synthesizer(writer).run(b"t", [{"Name": "Ada", "City": "Paris"}], layout)

    assert result.documents == [b"Paris"]
    assert "no preview size" in result.field_failures[0].reason


def test_draw_failure_does_not_abort_row() -> None:
    class FailingWriter(FakeWriter):
        def __call__(self, data):
            instance = super().__call__(data)
            instance.pages[0].fail_on = "boom"
            return instance

    writer = FailingWriter()
    layout = _layout(_field("A"), _field("B"))

    result = _synthesizer(writer).run(b"t", [{"A": "boom", "B": "fine"}], layout)

    assert result.documents == [b"fine"]
    assert len(result.field_failures) == 1
    assert result.field_failures[0].column_name == "A"


def test_serialization_failure_skips_row_and_keeps_order() -> None:
    writer = FakeWriter(fail_serialize_on={3})
    rows = [{"Name": f"row{number}"} for number in range(1, 6)]

    result = _synthesizer(writer).run(b"t", rows, _layout(_field("Name")))

    assert result.documents == [b"row1", b"row2", b"row4", b"row5"]
    assert result.failures == [RowFailure(row_number=3, reason="serialization failed")]
    assert result.produced_count == 4
    assert result.row_count == 5


def test_open_failure_skips_row() -> None:
    writer = FakeWriter(fail_open_on={1})

    result = _synthesizer(writer).run(b"t", [{"Name": "a"}, {"Name": "b"}], _layout(_field("Name")))

    assert result.documents == [b"b"]
    assert result.failures[0].row_number == 1


def test_code_fields_draw_image_in_native_box(fake_writer: FakeWriter) -> None:
    codes: list[str] = []
    field = _field("Link", is_code=True, x=10.0, y=20.0, width=80.0, height=80.0)

    _synthesizer(fake_writer, codes).run(b"t", [{"Link": "https://example.com/1"}], _layout(field))

    page = fake_writer.instances[0].pages[0]
    assert codes == ["https://example.com/1"]
    assert page.texts == []
    assert page.images == [
        {
            "image": b"qr:https://example.com/1",
            "x": 20.0,
            "y": 800.0 - 40.0 - 160.0,
            "width": 160.0,
            "height": 160.0,
            "rotation": -0.0,
        }
    ]


def test_fonts_embedded_once_per_instance(fake_writer: FakeWriter) -> None:
    layout = _layout(
        _field("A"),
        _field("B"),
        _field("C", font_weight=FontWeight.BOLD),
    )

    _synthesizer(fake_writer).run(b"t", [{"A": "1", "B": "2", "C": "3"}] * 2, layout)

    for instance in fake_writer.instances:
        assert instance.embedded == ["Helvetica", "Helvetica-Bold"]


def test_center_alignment_shifts_origin(fake_writer: FakeWriter) -> None:
    field = _field("Name", x=0.0, width=100.0, text_align=TextAlign.CENTER)

    _synthesizer(fake_writer).run(b"t", [{"Name": "abcd"}], _layout(field))

    text = fake_writer.instances[0].pages[0].texts[0]
    # Box is 200pt wide natively, text is 4 * 24 * 0.5 = 48pt.
    assert text["x"] == pytest.approx(76.0)


def test_progress_reports_every_row(fake_writer: FakeWriter) -> None:
    calls: list[tuple[int, int]] = []

    _synthesizer(fake_writer).run(
        b"t", [{"Name": "a"}, {"Name": "b"}], _layout(_field("Name")), progress=lambda *args: calls.append(args)
    )

    assert calls == [(1, 2), (2, 2)]


def test_hex_to_rgb() -> None:
    assert hex_to_rgb("#336699") == (0.2, 0.4, 0.6)
    assert hex_to_rgb("ffffff") == (1.0, 1.0, 1.0)
    assert hex_to_rgb("not-a-color") == (0.0, 0.0, 0.0)
    assert hex_to_rgb(None) == (0.0, 0.0, 0.0)
