"""Interactive page canvas for field placement, dragging and scaling."""

from __future__ import annotations

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QFont, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QWidget

from formstamp.model.field import FieldPlacement, TextAlign
from formstamp.viewer.surface import PlacementSurface

COLUMN_MIME_TYPE = "application/x-formstamp-column"
CODE_MIME_TYPE = "application/x-formstamp-code"

_ALIGN_FLAGS = {
    TextAlign.LEFT: Qt.AlignmentFlag.AlignLeft,
    TextAlign.CENTER: Qt.AlignmentFlag.AlignHCenter,
    TextAlign.RIGHT: Qt.AlignmentFlag.AlignRight,
}


class PageCanvas(QWidget):
    selection_changed = Signal(object)
    fields_changed = Signal()

    def __init__(self) -> None:
        super().__init__()
        self._surface: PlacementSurface | None = None
        self._pixmaps: dict[int, QPixmap] = {}
        self._selected_id: str | None = None
        self._interaction: str | None = None
        self._drag_offset: QPointF | None = None
        self._resize_start: QPointF | None = None
        self._resize_start_scale: tuple[float, float] | None = None

        self.setAcceptDrops(True)
        self.setMouseTracking(True)
        self.setMinimumSize(500, 600)

    @property
    def selected_field(self) -> FieldPlacement | None:
        if self._surface is None or self._selected_id is None:
            return None
        return self._surface.field(self._selected_id)

    def set_surface(self, surface: PlacementSurface | None) -> None:
        self._surface = surface
        self._pixmaps.clear()
        self.clear_selection()
        self.refresh()

    def clear_selection(self) -> None:
        self._selected_id = None
        self._interaction = None
        self._drag_offset = None
        self._resize_start = None
        self._resize_start_scale = None
        self.selection_changed.emit(None)

    def refresh(self) -> None:
        surface = self._surface
        if surface is None or not surface.is_ready:
            self.resize(500, 600)
        else:
            size = surface.surface_size
            self.resize(int(round(size.width)), int(round(size.height)))
        if self._selected_id is not None and self.selected_field is None:
            self.clear_selection()
        self.update()

    def delete_selected_field(self) -> bool:
        if self._surface is None or self._selected_id is None:
            return False
        removed = self._surface.remove_field(self._selected_id)
        self.clear_selection()
        if removed:
            self.fields_changed.emit()
        self.update()
        return removed

    def paintEvent(self, event) -> None:  # type: ignore[override]
        del event
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor("#e9eaee"))

        surface = self._surface
        if surface is None or not surface.is_ready:
            return

        pixmap = self._page_pixmap(surface.active_page)
        if pixmap is not None:
            size = surface.surface_size
            painter.drawPixmap(QRectF(0, 0, size.width, size.height), pixmap, QRectF(pixmap.rect()))

        for placement in surface.live_fields():
            selected = placement.id == self._selected_id
            self._paint_field(painter, placement, selected)

    def _paint_field(self, painter: QPainter, placement: FieldPlacement, selected: bool) -> None:
        rect = QRectF(0, 0, placement.display_width, placement.display_height)
        color = QColor("#c62828") if selected else QColor("#1565c0")

        painter.save()
        painter.translate(placement.x, placement.y)
        painter.rotate(placement.rotation)

        pen = QPen(color)
        pen.setWidth(2 if selected else 1)
        painter.setPen(pen)
        painter.drawRect(rect)

        font = QFont(placement.font_family)
        font.setPixelSize(max(1, int(round(placement.font_size * placement.scale_x))))
        font.setBold(placement.is_bold)
        font.setItalic(placement.is_italic)
        painter.setFont(font)
        painter.setPen(QColor(placement.fill))
        flags = _ALIGN_FLAGS[placement.text_align] | Qt.AlignmentFlag.AlignTop
        painter.drawText(rect, flags, placement.placeholder_text())

        if selected:
            painter.fillRect(self._resize_handle_rect(rect), color)
        painter.restore()

    def dragEnterEvent(self, event) -> None:  # type: ignore[override]
        if event.mimeData().hasFormat(COLUMN_MIME_TYPE):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event) -> None:  # type: ignore[override]
        if event.mimeData().hasFormat(COLUMN_MIME_TYPE):
            event.acceptProposedAction()

    def dropEvent(self, event) -> None:  # type: ignore[override]
        if self._surface is None:
            return
        mime = event.mimeData()
        column_name = bytes(mime.data(COLUMN_MIME_TYPE)).decode("utf-8")
        is_code = mime.hasFormat(CODE_MIME_TYPE)
        position = event.position()
        placement = self._surface.place_field(column_name, position.x(), position.y(), is_code)
        if placement is None:
            event.ignore()
            return
        event.acceptProposedAction()
        self._selected_id = placement.id
        self.selection_changed.emit(placement)
        self.fields_changed.emit()
        self.update()

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if self._surface is None or not self._surface.is_ready:
            return
        if event.button() != Qt.MouseButton.LeftButton:
            return

        pos = event.position()
        selected = self.selected_field
        if selected is not None and self._handle_hit(selected, pos):
            self._interaction = "resize"
            self._resize_start = pos
            self._resize_start_scale = (selected.scale_x, selected.scale_y)
            return

        clicked = self._surface.field_at(pos.x(), pos.y())
        self._selected_id = clicked.id if clicked is not None else None
        self.selection_changed.emit(clicked)
        if clicked is not None:
            self._interaction = "move"
            self._drag_offset = pos - QPointF(clicked.x, clicked.y)
        self.update()

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        field = self.selected_field
        if field is None or self._surface is None or self._interaction is None:
            return

        pos = event.position()
        if self._interaction == "move":
            offset = self._drag_offset or QPointF(0, 0)
            top_left = pos - offset
            self._surface.move_field(field.id, top_left.x(), top_left.y())
        elif self._interaction == "resize":
            if self._resize_start is None or self._resize_start_scale is None:
                return
            start_sx, start_sy = self._resize_start_scale
            start_w = field.width * start_sx
            start_h = field.height * start_sy
            # Drag distance measured along the field's rotated axes.
            end_x, end_y = field.local_point(pos.x(), pos.y())
            begin_x, begin_y = field.local_point(self._resize_start.x(), self._resize_start.y())
            new_w = max(7.0, start_w + end_x - begin_x)
            new_h = max(7.0, start_h + end_y - begin_y)
            if field.is_code:
                new_w = new_h = max(new_w, new_h)
            self._surface.scale_field(field.id, new_w / field.width, new_h / field.height)
        self.fields_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        del event
        self._interaction = None
        self._drag_offset = None
        self._resize_start = None
        self._resize_start_scale = None

    def _page_pixmap(self, page_number: int | None) -> QPixmap | None:
        if self._surface is None or page_number is None:
            return None
        pixmap = self._pixmaps.get(page_number)
        if pixmap is None:
            preview = self._surface.preview(page_number)
            if preview is None:
                return None
            pixmap = QPixmap()
            pixmap.loadFromData(preview.image_png, "PNG")
            self._pixmaps[page_number] = pixmap
        return pixmap

    def _handle_hit(self, placement: FieldPlacement, pos: QPointF) -> bool:
        local_x, local_y = placement.local_point(pos.x(), pos.y())
        rect = QRectF(0, 0, placement.display_width, placement.display_height)
        return self._resize_handle_rect(rect).contains(QPointF(local_x, local_y))

    def _resize_handle_rect(self, field_rect: QRectF) -> QRectF:
        handle_size = 10.0
        return QRectF(
            field_rect.right() - handle_size / 2.0,
            field_rect.bottom() - handle_size / 2.0,
            handle_size,
            handle_size,
        )
