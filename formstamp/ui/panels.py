"""Side panels: draggable dataset columns and selected-field properties."""

from __future__ import annotations

from PySide6.QtCore import QMimeData, Qt, Signal
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QCheckBox,
    QColorDialog,
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from formstamp.config import SUPPORTED_FONTS
from formstamp.model.field import FieldPlacement, FontStyle, FontWeight, TextAlign
from formstamp.viewer.canvas import CODE_MIME_TYPE, COLUMN_MIME_TYPE

_COLUMN_ROLE = Qt.ItemDataRole.UserRole
_CODE_ROLE = Qt.ItemDataRole.UserRole + 1


class ColumnList(QListWidget):
    """Dataset columns offered as text and QR drag sources."""

    def __init__(self) -> None:
        super().__init__()
        self.setDragEnabled(True)
        self.setDragDropMode(QAbstractItemView.DragDropMode.DragOnly)

    def set_columns(self, columns: list[str]) -> None:
        self.clear()
        for column in columns:
            for is_code in (False, True):
                label = f"QR: {column}" if is_code else column
                item = QListWidgetItem(label)
                item.setData(_COLUMN_ROLE, column)
                item.setData(_CODE_ROLE, is_code)
                self.addItem(item)

    def mimeData(self, items) -> QMimeData:  # type: ignore[override]
        mime = QMimeData()
        if not items:
            return mime
        item = items[0]
        mime.setData(COLUMN_MIME_TYPE, str(item.data(_COLUMN_ROLE)).encode("utf-8"))
        if item.data(_CODE_ROLE):
            mime.setData(CODE_MIME_TYPE, b"1")
        return mime


class FieldPropertiesPanel(QWidget):
    field_edited = Signal(str, dict)
    delete_requested = Signal()

    def __init__(self) -> None:
        super().__init__()
        self._field_id: str | None = None
        self._fill = "#000000"

        self.title = QLabel("No field selected")

        self.font_size = QDoubleSpinBox()
        self.font_size.setRange(4.0, 200.0)
        self.font_size.setDecimals(1)
        self.font_size.valueChanged.connect(lambda value: self._emit(font_size=float(value)))

        self.color_button = QPushButton()
        self.color_button.clicked.connect(self._choose_color)

        self.font_family = QComboBox()
        self.font_family.addItems(list(SUPPORTED_FONTS))
        self.font_family.currentTextChanged.connect(lambda text: self._emit(font_family=text))

        self.text_align = QComboBox()
        for align in TextAlign:
            self.text_align.addItem(align.value.title(), align.value)
        self.text_align.currentIndexChanged.connect(
            lambda index: self._emit(text_align=self.text_align.itemData(index))
        )

        self.bold = QCheckBox("Bold")
        self.bold.toggled.connect(
            lambda checked: self._emit(font_weight=FontWeight.BOLD if checked else FontWeight.NORMAL)
        )
        self.italic = QCheckBox("Italic")
        self.italic.toggled.connect(
            lambda checked: self._emit(font_style=FontStyle.ITALIC if checked else FontStyle.NORMAL)
        )

        self.rotation = QDoubleSpinBox()
        self.rotation.setRange(-360.0, 360.0)
        self.rotation.setDecimals(1)
        self.rotation.setSuffix(" deg")
        self.rotation.valueChanged.connect(lambda value: self._emit(rotation=float(value)))

        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self.delete_requested.emit)

        form = QFormLayout()
        form.addRow("Font size", self.font_size)
        form.addRow("Color", self.color_button)
        form.addRow("Font", self.font_family)
        form.addRow("Align", self.text_align)
        form.addRow("", self.bold)
        form.addRow("", self.italic)
        form.addRow("Rotation", self.rotation)

        layout = QVBoxLayout(self)
        layout.addWidget(self.title)
        layout.addLayout(form)
        layout.addWidget(self.delete_button)
        layout.addStretch(1)

        self.set_field(None)

    def set_field(self, field: FieldPlacement | None) -> None:
        self._field_id = None
        enabled = field is not None
        for widget in (
            self.font_size,
            self.color_button,
            self.font_family,
            self.text_align,
            self.bold,
            self.italic,
            self.rotation,
            self.delete_button,
        ):
            widget.setEnabled(enabled)

        if field is None:
            self.title.setText("No field selected")
            return

        self.title.setText(field.placeholder_text())
        for widget in (self.font_size, self.font_family, self.text_align, self.bold, self.italic, self.rotation):
            widget.blockSignals(True)
        self.font_size.setValue(field.font_size)
        self.font_family.setCurrentText(field.font_family)
        self.text_align.setCurrentIndex(self.text_align.findData(field.text_align.value))
        self.bold.setChecked(field.is_bold)
        self.italic.setChecked(field.is_italic)
        self.rotation.setValue(field.rotation)
        for widget in (self.font_size, self.font_family, self.text_align, self.bold, self.italic, self.rotation):
            widget.blockSignals(False)
        self._set_fill(field.fill)
        self._field_id = field.id

    def _choose_color(self) -> None:
        color = QColorDialog.getColor(QColor(self._fill), self, "Field Color")
        if not color.isValid():
            return
        self._set_fill(color.name())
        self._emit(fill=self._fill)

    def _set_fill(self, fill: str) -> None:
        self._fill = fill
        self.color_button.setText(fill)
        self.color_button.setStyleSheet(f"background-color: {fill};")

    def _emit(self, **changes: object) -> None:
        if self._field_id is None:
            return
        self.field_edited.emit(self._field_id, changes)
