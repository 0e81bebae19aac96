"""Per-page placement snapshots for one editing session."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
import logging

from formstamp.model.field import FieldPlacement, PreviewSize

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PageSnapshot:
    page_number: int
    fields: tuple[FieldPlacement, ...]
    surface_size: PreviewSize


@dataclass(frozen=True, slots=True)
class FinalizedLayout:
    fields: tuple[FieldPlacement, ...] = ()
    preview_sizes: dict[int, PreviewSize] = field(default_factory=dict)

    @property
    def code_field_count(self) -> int:
        return sum(1 for placement in self.fields if placement.is_code)


@dataclass(slots=True)
class PlacementStore:
    snapshots: dict[int, PageSnapshot] = field(default_factory=dict)

    def record_page(
        self,
        page_number: int,
        fields: Iterable[FieldPlacement],
        surface_size: PreviewSize,
    ) -> PageSnapshot:
        """Replace the page's snapshot with copies of ``fields``."""
        snapshot = PageSnapshot(
            page_number=page_number,
            fields=tuple(replace(placement) for placement in fields),
            surface_size=surface_size,
        )
        self.snapshots[page_number] = snapshot
        logger.debug(
            "Recorded page %d: %d field(s) at %.1fx%.1f",
            page_number,
            len(snapshot.fields),
            surface_size.width,
            surface_size.height,
        )
        return snapshot

    def snapshot(self, page_number: int) -> PageSnapshot | None:
        return self.snapshots.get(page_number)

    @property
    def page_numbers(self) -> list[int]:
        return sorted(self.snapshots)

    @property
    def field_count(self) -> int:
        return sum(len(snapshot.fields) for snapshot in self.snapshots.values())

    def finalize(self) -> FinalizedLayout:
        fields: list[FieldPlacement] = []
        preview_sizes: dict[int, PreviewSize] = {}
        for page_number in self.page_numbers:
            snapshot = self.snapshots[page_number]
            for placement in snapshot.fields:
                if placement.page_number != page_number:
                    logger.warning(
                        "Field %s (%s) tagged for page %d was captured on page %d; using %d",
                        placement.id,
                        placement.column_name,
                        placement.page_number,
                        page_number,
                        page_number,
                    )
                fields.append(replace(placement, page_number=page_number))
            preview_sizes[page_number] = snapshot.surface_size
        return FinalizedLayout(fields=tuple(fields), preview_sizes=preview_sizes)

    def reset(self) -> None:
        self.snapshots.clear()
