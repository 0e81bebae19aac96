"""Placement surface state: one active page, its preview and its fields.

The surface is GUI-free. ``PageCanvas`` paints whatever the surface holds and
forwards user gestures to it; tests drive it directly.

Fields live in a canonical table keyed by id. The overlay objects shown on the
canvas only carry that id plus the page they were created on. Navigating away
from a page copies the page's fields into the placement store; navigating
back rebuilds them from that copy.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, replace
import logging

from formstamp.config import (
    DEFAULT_CODE_SIZE,
    DEFAULT_FONT_SIZE,
    DEFAULT_LINE_HEIGHT,
    DEFAULT_TEXT_WIDTH,
)
from formstamp.model.field import FieldPlacement, FontStyle, FontWeight, PreviewSize, TextAlign
from formstamp.pdf.renderer import PagePreview, PreviewContext
from formstamp.state.cancellation import CancellationToken, PreviewCancelled
from formstamp.state.store import FinalizedLayout, PageSnapshot, PlacementStore

logger = logging.getLogger(__name__)

ContextFactory = Callable[[], PreviewContext]

_IMMUTABLE_ATTRIBUTES = frozenset({"id", "page_number"})
_ENUM_ATTRIBUTES = {
    "text_align": TextAlign,
    "font_weight": FontWeight,
    "font_style": FontStyle,
}


@dataclass(slots=True)
class SurfaceObject:
    field_id: str
    page_number: int


class PlacementSurface:
    def __init__(
        self,
        store: PlacementStore,
        context_factory: ContextFactory,
        container_width: float = 0.0,
    ) -> None:
        self._store = store
        self._context_factory = context_factory
        self._context: PreviewContext | None = None
        self._previews: dict[int, PagePreview] = {}
        self._preview_iter: Iterator[PagePreview] | None = None
        self._token: CancellationToken | None = None
        self._load_finished = False
        self._fields: dict[str, FieldPlacement] = {}
        self._objects: list[SurfaceObject] = []
        # Unedited geometry the live fields are rescaled from on resize.
        self._basis: dict[str, FieldPlacement] | None = None
        self._basis_size = PreviewSize(width=0.0, height=0.0)
        self._active_page: int | None = None
        self.current_page = 1
        self.container_width = float(container_width)
        self.display_scale = 1.0
        self.surface_size = PreviewSize(width=0.0, height=0.0)

    # -- rendering context -------------------------------------------------

    @property
    def context(self) -> PreviewContext:
        if self._context is None:
            self._context = self._context_factory()
        return self._context

    @property
    def page_count(self) -> int:
        return self.context.page_count

    def dispose(self) -> None:
        self.cancel_previews()
        self._clear_live()
        self._previews.clear()
        self._active_page = None
        if self._context is not None:
            self._context.close()
            self._context = None

    # -- preview loading ---------------------------------------------------

    def start_preview_load(self, token: CancellationToken | None = None) -> CancellationToken:
        self.cancel_previews()
        self._token = token or CancellationToken()
        self._load_finished = False
        self._preview_iter = self.context.previews(self._token)
        return self._token

    def step_previews(self) -> bool:
        """Render the next page preview. Returns True while pages remain."""
        if self._preview_iter is None:
            return False
        try:
            preview = next(self._preview_iter)
        except StopIteration:
            self._preview_iter = None
            self._load_finished = True
            self._activate_fallback()
            return False
        except PreviewCancelled:
            logger.info("Preview load cancelled after %d page(s)", len(self._previews))
            self._preview_iter = None
            return False

        self._previews[preview.page_number] = preview
        if preview.page_number == self.current_page and self._active_page is None:
            self.activate(preview.page_number)
        return True

    def load_previews(self, token: CancellationToken | None = None) -> int:
        self.start_preview_load(token)
        while self.step_previews():
            pass
        return len(self._previews)

    def cancel_previews(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._preview_iter = None

    @property
    def is_loading(self) -> bool:
        return self._preview_iter is not None

    def preview(self, page_number: int) -> PagePreview | None:
        return self._previews.get(page_number)

    def page_available(self, page_number: int) -> bool:
        """False once loading has finished without a preview for the page."""
        return page_number in self._previews or not self._load_finished

    def _activate_fallback(self) -> None:
        # The page waiting for activation never got a preview.
        if not self._load_finished or self._active_page is not None or not self._previews:
            return
        if self.current_page in self._previews:
            return
        fallback = min(self._previews, key=lambda number: (abs(number - self.current_page), number))
        logger.warning(
            "Page %d has no preview; showing page %d instead",
            self.current_page,
            fallback,
        )
        self.activate(fallback)

    # -- activation --------------------------------------------------------

    @property
    def active_page(self) -> int | None:
        return self._active_page

    @property
    def is_ready(self) -> bool:
        return self._active_page is not None

    def activate(self, page_number: int) -> bool:
        """Show ``page_number`` and rebuild its fields from the store.

        Returns False while the page's preview or the container width is not
        available yet; activation is retried once they are.
        """
        preview = self._previews.get(page_number)
        if preview is None or self.container_width <= 0:
            return False

        self._clear_live()
        self.current_page = page_number
        self._apply_scale(preview)

        snapshot = self._store.snapshot(page_number)
        if snapshot is not None:
            ratio = self._restore_ratio(snapshot)
            basis: dict[str, FieldPlacement] = {}
            for placement in snapshot.fields:
                if placement.page_number != page_number:
                    logger.warning(
                        "Skipping field %s tagged for page %d while restoring page %d",
                        placement.id,
                        placement.page_number,
                        page_number,
                    )
                    continue
                self._add_live(_rescaled(placement, ratio))
                basis[placement.id] = placement
            if snapshot.surface_size.width > 0:
                self._basis = basis
                self._basis_size = snapshot.surface_size

        self._active_page = page_number
        logger.debug(
            "Activated page %d at scale %.4f with %d field(s)",
            page_number,
            self.display_scale,
            len(self._objects),
        )
        return True

    def resize(self, container_width: float) -> None:
        self.container_width = float(container_width)
        if self.container_width <= 0:
            return
        if self._active_page is None:
            if not self.activate(self.current_page):
                self._activate_fallback()
            return

        preview = self._previews[self._active_page]
        old_size = self.surface_size
        self._apply_scale(preview)
        if old_size.width <= 0 or old_size.width == self.surface_size.width:
            return
        # Always scale from the unedited geometry so repeated resizes do not
        # accumulate rounding error.
        if self._basis is None:
            self._basis = dict(self._fields)
            self._basis_size = old_size
        ratio = self.surface_size.width / self._basis_size.width
        for field_id, placement in self._basis.items():
            if field_id in self._fields:
                self._fields[field_id] = _rescaled(placement, ratio)

    def _apply_scale(self, preview: PagePreview) -> None:
        self.display_scale = self.container_width / preview.width
        self.surface_size = PreviewSize(
            width=self.container_width,
            height=preview.height * self.display_scale,
        )

    def _restore_ratio(self, snapshot: PageSnapshot) -> float:
        if snapshot.surface_size.width <= 0:
            return 1.0
        return self.surface_size.width / snapshot.surface_size.width

    # -- navigation --------------------------------------------------------

    def change_page(self, target: int) -> bool:
        if not self.is_ready or target == self.current_page:
            return False
        if target < 1 or target > self.page_count:
            return False
        if not self.page_available(target):
            logger.warning("Page %d has no preview; staying on page %d", target, self.current_page)
            return False

        self.capture_current_page()
        self._clear_live()
        self._active_page = None
        self.current_page = target
        self.activate(target)
        return True

    def capture_current_page(self) -> PageSnapshot | None:
        if self._active_page is None:
            return None
        if self._basis is not None:
            source, surface_size = self._basis, self._basis_size
        else:
            source, surface_size = self._fields, self.surface_size
        page_fields: list[FieldPlacement] = []
        for obj in self._objects:
            if obj.page_number != self._active_page:
                logger.error(
                    "Overlay for field %s is tagged for page %d but page %d is active; dropping it",
                    obj.field_id,
                    obj.page_number,
                    self._active_page,
                )
                continue
            page_fields.append(source[obj.field_id])
        return self._store.record_page(self._active_page, page_fields, surface_size)

    def next(self) -> FinalizedLayout:
        self.capture_current_page()
        layout = self._store.finalize()
        logger.info(
            "Finalized %d field(s) across %d page(s)",
            len(layout.fields),
            len(layout.preview_sizes),
        )
        return layout

    # -- field edits -------------------------------------------------------

    def place_field(
        self,
        column_name: str,
        x: float,
        y: float,
        is_code: bool = False,
    ) -> FieldPlacement | None:
        if self._active_page is None:
            return None
        if is_code:
            width = height = DEFAULT_CODE_SIZE
        else:
            width = DEFAULT_TEXT_WIDTH
            height = DEFAULT_FONT_SIZE * DEFAULT_LINE_HEIGHT
        placement = FieldPlacement(
            column_name=column_name,
            page_number=self._active_page,
            x=float(x),
            y=float(y),
            width=width,
            height=height,
            is_code=is_code,
        )
        self._add_live(placement)
        logger.debug("Placed %s on page %d at (%.1f, %.1f)", column_name, self._active_page, x, y)
        return placement

    def update_field(self, field_id: str, **changes: object) -> FieldPlacement:
        locked = _IMMUTABLE_ATTRIBUTES.intersection(changes)
        if locked:
            raise ValueError(f"Cannot change {', '.join(sorted(locked))} of a placed field")
        for name, enum_type in _ENUM_ATTRIBUTES.items():
            if name in changes:
                changes[name] = enum_type(changes[name])
        updated = replace(self._fields[field_id], **changes)
        self._fields[field_id] = updated
        self._basis = None
        return updated

    def move_field(self, field_id: str, x: float, y: float) -> FieldPlacement:
        return self.update_field(field_id, x=float(x), y=float(y))

    def scale_field(self, field_id: str, scale_x: float, scale_y: float) -> FieldPlacement:
        return self.update_field(field_id, scale_x=float(scale_x), scale_y=float(scale_y))

    def remove_field(self, field_id: str) -> bool:
        if field_id not in self._fields:
            return False
        del self._fields[field_id]
        self._basis = None
        self._objects = [obj for obj in self._objects if obj.field_id != field_id]
        return True

    def field(self, field_id: str) -> FieldPlacement | None:
        return self._fields.get(field_id)

    def live_fields(self) -> list[FieldPlacement]:
        return [self._fields[obj.field_id] for obj in self._objects if obj.field_id in self._fields]

    @property
    def live_objects(self) -> list[SurfaceObject]:
        return self._objects

    def field_at(self, x: float, y: float) -> FieldPlacement | None:
        for obj in reversed(self._objects):
            placement = self._fields.get(obj.field_id)
            if placement is None:
                continue
            if placement.contains(x, y):
                return placement
        return None

    def _add_live(self, placement: FieldPlacement) -> None:
        self._basis = None
        self._fields[placement.id] = placement
        self._objects.append(SurfaceObject(field_id=placement.id, page_number=placement.page_number))

    def _clear_live(self) -> None:
        self._basis = None
        self._fields.clear()
        self._objects.clear()


def _rescaled(placement: FieldPlacement, ratio: float) -> FieldPlacement:
    if ratio == 1.0:
        return replace(placement)
    return replace(
        placement,
        x=placement.x * ratio,
        y=placement.y * ratio,
        scale_x=placement.scale_x * ratio,
        scale_y=placement.scale_y * ratio,
    )
