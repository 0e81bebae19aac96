"""Shared fixtures: real template PDFs and in-memory fakes for the writer."""

from __future__ import annotations

from io import BytesIO

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from formstamp.model.field import PageSize
from formstamp.pdf.renderer import PagePreview
from formstamp.state.cancellation import CancellationToken


def build_pdf(page_sizes: list[tuple[float, float]], label: str = "Template") -> bytes:
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=page_sizes[0])
    for number, size in enumerate(page_sizes, start=1):
        report.setPageSize(size)
        report.setFont("Helvetica", 10)
        report.drawString(36, 36, f"{label} page {number}")
        report.showPage()
    report.save()
    return buffer.getvalue()


@pytest.fixture
def pdf_factory():
    return build_pdf


@pytest.fixture
def template_bytes() -> bytes:
    return build_pdf([letter, letter])


class FakeFont:
    def __init__(self, name: str) -> None:
        self.name = name

    def ascent_at(self, size: float) -> float:
        return size

    def width_of(self, text: str, size: float) -> float:
        return len(text) * size * 0.5


class FakePage:
    def __init__(self, size: PageSize) -> None:
        self.size = size
        self.texts: list[dict] = []
        self.images: list[dict] = []
        self.fail_on: str | None = None

    def native_size(self) -> PageSize:
        return self.size

    def draw_text(self, value, x, y, font, size, color_rgb, rotation=0.0) -> None:
        if self.fail_on is not None and value == self.fail_on:
            raise RuntimeError(f"cannot draw {value}")
        self.texts.append(
            {
                "value": value,
                "x": x,
                "y": y,
                "font": font.name,
                "size": size,
                "color": color_rgb,
                "rotation": rotation,
            }
        )

    def draw_image(self, image, x, y, width, height, rotation=0.0) -> None:
        self.images.append(
            {"image": image, "x": x, "y": y, "width": width, "height": height, "rotation": rotation}
        )


class FakeInstance:
    def __init__(self, data: bytes, page_sizes: list[PageSize], fail_serialize: bool = False) -> None:
        self.data = data
        self.pages = [FakePage(size) for size in page_sizes]
        self.fail_serialize = fail_serialize
        self.embedded: list[str] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page(self, page_number: int) -> FakePage:
        return self.pages[page_number - 1]

    def embed_font(self, source) -> FakeFont:
        self.embedded.append(source.name)
        return FakeFont(source.name)

    def serialize(self) -> bytes:
        if self.fail_serialize:
            raise RuntimeError("serialization failed")
        values = [text["value"] for page in self.pages for text in page.texts]
        return "|".join(values).encode("utf-8")


class FakeWriter:
    """Opens ``FakeInstance`` objects and remembers them in order."""

    def __init__(
        self,
        page_sizes: list[PageSize] | None = None,
        fail_serialize_on: set[int] | None = None,
        fail_open_on: set[int] | None = None,
    ) -> None:
        self.page_sizes = page_sizes or [PageSize(600.0, 800.0)]
        self.fail_serialize_on = fail_serialize_on or set()
        self.fail_open_on = fail_open_on or set()
        self.instances: list[FakeInstance] = []
        self.opened_with: list[bytes] = []

    def __call__(self, data: bytes) -> FakeInstance:
        call_number = len(self.opened_with) + 1
        self.opened_with.append(data)
        if call_number in self.fail_open_on:
            raise RuntimeError("template could not be opened")
        instance = FakeInstance(
            data,
            self.page_sizes,
            fail_serialize=call_number in self.fail_serialize_on,
        )
        self.instances.append(instance)
        return instance


@pytest.fixture
def fake_writer() -> FakeWriter:
    return FakeWriter()


class FakePreviewContext:
    def __init__(self, previews: list[PagePreview], page_count: int | None = None) -> None:
        self._previews = previews
        self._page_count = len(previews) if page_count is None else page_count
        self.closed = False
        self.rendered: list[int] = []

    @property
    def page_count(self) -> int:
        return self._page_count

    def previews(self, token: CancellationToken):
        for preview in self._previews:
            token.raise_if_cancelled()
            self.rendered.append(preview.page_number)
            yield preview

    def close(self) -> None:
        self.closed = True


def make_previews(count: int, width: int = 1000, height: int = 1400) -> list[PagePreview]:
    return [
        PagePreview(page_number=number, image_png=b"png", width=width, height=height)
        for number in range(1, count + 1)
    ]


@pytest.fixture
def preview_context_factory():
    def factory(
        count: int = 2, width: int = 1000, height: int = 1400, missing: tuple[int, ...] = ()
    ) -> FakePreviewContext:
        # Pages listed in ``missing`` behave as if their render failed.
        previews = [
            preview
            for preview in make_previews(count, width, height)
            if preview.page_number not in missing
        ]
        return FakePreviewContext(previews, page_count=count)

    return factory
