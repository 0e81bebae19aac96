"""Document model for the template PDF and its preview handle."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import fitz

from formstamp.model.field import PageSize


@dataclass(slots=True)
class TemplateDocument:
    path: Path
    data: bytes
    handle: fitz.Document

    @property
    def page_count(self) -> int:
        return self.handle.page_count

    @property
    def base_name(self) -> str:
        return self.path.stem

    def native_page_size(self, page_number: int) -> PageSize:
        page = self.handle.load_page(page_number - 1)
        return PageSize(width=float(page.rect.width), height=float(page.rect.height))

    def close(self) -> None:
        if not self.handle.is_closed:
            self.handle.close()
        self.data = b""
