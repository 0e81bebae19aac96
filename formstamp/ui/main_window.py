"""Main application window for template preview, field placement and generation."""

from __future__ import annotations

import logging
from pathlib import Path

from PySide6.QtCore import QEvent, QObject, Qt, QTimer
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
    QScrollArea,
    QSplitter,
    QToolBar,
)

from formstamp.config import Settings
from formstamp.data.tabular import TabularLoadError, list_sheet_names, load_dataset
from formstamp.pdf.archive import ArchiveError, pack_documents
from formstamp.pdf.fonts import FontLibrary
from formstamp.pdf.loader import PdfLoadError, load_template
from formstamp.pdf.renderer import PreviewContext
from formstamp.pdf.synthesis import SynthesisResult, synthesize_documents
from formstamp.state.session import EditingSession
from formstamp.ui.panels import ColumnList, FieldPropertiesPanel
from formstamp.viewer.canvas import PageCanvas
from formstamp.viewer.surface import PlacementSurface

logger = logging.getLogger(__name__)

_CANVAS_MARGIN = 24


class MainWindow(QMainWindow):
    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self.setWindowTitle("FormStamp")
        self.resize(1300, 850)

        self._settings = settings or Settings()
        self._session = EditingSession()
        self._surface: PlacementSurface | None = None

        self._preview_timer = QTimer(self)
        self._preview_timer.setInterval(0)
        self._preview_timer.timeout.connect(self._on_preview_tick)

        self.column_list = ColumnList()

        self.canvas = PageCanvas()
        self.canvas.selection_changed.connect(self._on_selection_changed)
        self.canvas.fields_changed.connect(self._on_canvas_fields_changed)

        self.properties = FieldPropertiesPanel()
        self.properties.field_edited.connect(self._on_field_edited)
        self.properties.delete_requested.connect(self.delete_selected_field)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(False)
        self.scroll_area.setAlignment(Qt.AlignmentFlag.AlignHCenter)
        self.scroll_area.setWidget(self.canvas)
        self.scroll_area.viewport().installEventFilter(self)

        splitter = QSplitter()
        splitter.addWidget(self.column_list)
        splitter.addWidget(self.scroll_area)
        splitter.addWidget(self.properties)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 4)
        splitter.setStretchFactor(2, 1)
        self.setCentralWidget(splitter)

        self._build_toolbar()
        self.statusBar().showMessage("Open a PDF template and a spreadsheet to begin")

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Main Toolbar")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        open_template_action = QAction("Open Template", self)
        open_template_action.triggered.connect(self.open_template)
        toolbar.addAction(open_template_action)

        open_data_action = QAction("Open Data", self)
        open_data_action.triggered.connect(self.open_data)
        toolbar.addAction(open_data_action)

        toolbar.addSeparator()

        prev_action = QAction("Previous", self)
        prev_action.triggered.connect(self.show_previous_page)
        toolbar.addAction(prev_action)

        next_action = QAction("Next", self)
        next_action.triggered.connect(self.show_next_page)
        toolbar.addAction(next_action)

        toolbar.addSeparator()

        delete_action = QAction("Delete Field", self)
        delete_action.setShortcut(QKeySequence.StandardKey.Delete)
        delete_action.triggered.connect(self.delete_selected_field)
        toolbar.addAction(delete_action)

        toolbar.addSeparator()

        generate_action = QAction("Generate ZIP", self)
        generate_action.triggered.connect(self.generate)
        toolbar.addAction(generate_action)

        reset_action = QAction("New Project", self)
        reset_action.triggered.connect(self.reset_session)
        toolbar.addAction(reset_action)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.reset_session()
        super().closeEvent(event)

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # type: ignore[override]
        if watched is self.scroll_area.viewport() and event.type() == QEvent.Type.Resize:
            self._on_viewport_resized()
        return super().eventFilter(watched, event)

    def open_template(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open PDF Template",
            str(Path.home()),
            "PDF Files (*.pdf)",
        )
        if not file_path:
            return

        try:
            template = load_template(file_path)
        except PdfLoadError as exc:
            QMessageBox.critical(self, "Open Failed", str(exc))
            return

        self._dispose_surface()
        if self._session.template is not None:
            self._session.template.close()
        self._session.template = template
        self._session.store.reset()
        self._session.layout = None

        zoom = self._settings.preview_zoom
        self._surface = PlacementSurface(
            self._session.store,
            lambda: PreviewContext(template.data, zoom),
            container_width=self._container_width(),
        )
        self.canvas.set_surface(self._surface)
        self._surface.start_preview_load()
        self._preview_timer.start()
        self.statusBar().showMessage(f"Loading {template.path.name}...")

    def open_data(self) -> None:
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Spreadsheet",
            str(Path.home()),
            "Spreadsheets (*.xlsx *.xls *.csv)",
        )
        if not file_path:
            return

        try:
            sheets = list_sheet_names(file_path)
            sheet_name = sheets[0] if sheets else None
            if len(sheets) > 1:
                sheet_name, accepted = QInputDialog.getItem(
                    self,
                    "Select Sheet",
                    "Which sheet would you like to use?",
                    sheets,
                    0,
                    False,
                )
                if not accepted:
                    return
            dataset = load_dataset(file_path, sheet_name)
        except TabularLoadError as exc:
            QMessageBox.critical(self, "Data Load Failed", str(exc))
            return

        self._session.dataset = dataset
        self.column_list.set_columns(dataset.columns)
        self.statusBar().showMessage(
            f"Loaded {Path(file_path).name} [{dataset.sheet_name}]: "
            f"{len(dataset.columns)} column(s), {dataset.row_count} row(s)"
        )

    def show_previous_page(self) -> None:
        if self._surface is None:
            return
        self._go_to_page(self._surface.current_page - 1)

    def show_next_page(self) -> None:
        if self._surface is None:
            return
        self._go_to_page(self._surface.current_page + 1)

    def delete_selected_field(self) -> None:
        if self.canvas.delete_selected_field():
            self.statusBar().showMessage("Deleted field.")
        else:
            self.statusBar().showMessage("No selected field to delete.")

    def generate(self) -> None:
        session = self._session
        if self._surface is None or not session.is_ready:
            QMessageBox.information(self, "Not Ready", "Open a PDF template and a spreadsheet first.")
            return

        layout = self._surface.next()
        session.layout = layout
        if not layout.fields:
            QMessageBox.information(self, "No Fields", "Drag at least one column onto the template.")
            return
        if session.dataset.row_count == 0:
            QMessageBox.information(self, "No Rows", "The selected sheet has no data rows.")
            return

        template = session.template
        default_name = f"{template.base_name}_documents.zip"
        output_path, _ = QFileDialog.getSaveFileName(
            self,
            "Save Documents",
            str(template.path.with_name(default_name)),
            "ZIP Archives (*.zip)",
        )
        if not output_path:
            return

        logger.info(
            "Generating %d document(s) from %d field(s) (%d QR)",
            session.dataset.row_count,
            len(layout.fields),
            layout.code_field_count,
        )
        progress = QProgressDialog("Generating PDFs...", None, 0, session.dataset.row_count, self)
        progress.setWindowModality(Qt.WindowModality.WindowModal)
        progress.setMinimumDuration(0)

        def on_progress(done: int, total: int) -> None:
            progress.setMaximum(total)
            progress.setValue(done)
            QApplication.processEvents()

        result = synthesize_documents(
            template.data,
            session.dataset.rows,
            layout,
            fonts=FontLibrary(self._settings.fonts_dir),
            baseline_factor=self._settings.baseline_factor,
            progress=on_progress,
        )
        progress.close()

        if not result.documents:
            self._show_report(QMessageBox.Icon.Critical, "Generation Failed", "No documents were produced.", result)
            return

        try:
            archive = pack_documents(result.documents, template.base_name)
            Path(output_path).write_bytes(archive)
        except (ArchiveError, OSError) as exc:
            logger.error("Archive could not be written: %s", exc, exc_info=True)
            QMessageBox.critical(self, "Generation Failed", str(exc))
            return

        self._show_report(
            QMessageBox.Icon.Information,
            "Generation Complete",
            f"{result.produced_count} of {result.row_count} PDF document(s) saved to {output_path}.",
            result,
        )
        # The template is not kept once its documents have been produced.
        self.reset_session()
        self.statusBar().showMessage(f"Saved: {output_path}")

    def reset_session(self) -> None:
        self._dispose_surface()
        self._session.reset()
        self.column_list.clear()
        self.properties.set_field(None)

    def _show_report(
        self,
        icon: QMessageBox.Icon,
        title: str,
        message: str,
        result: SynthesisResult,
    ) -> None:
        box = QMessageBox(icon, title, message, QMessageBox.StandardButton.Ok, self)
        if result.failures or result.field_failures:
            lines = [f"Row {failure.row_number}: {failure.reason}" for failure in result.failures]
            lines.extend(
                f"Row {failure.row_number}, field {failure.column_name}: {failure.reason}"
                for failure in result.field_failures
            )
            box.setInformativeText(f"{len(result.failures)} row(s) skipped.")
            box.setDetailedText("\n".join(lines))
        box.exec()

    def _go_to_page(self, page_number: int) -> None:
        surface = self._surface
        if surface is None or not surface.change_page(page_number):
            return
        self.canvas.clear_selection()
        self.canvas.refresh()
        self._show_page_status()

    def _on_preview_tick(self) -> None:
        if self._surface is None:
            self._preview_timer.stop()
            return
        was_ready = self._surface.is_ready
        if not self._surface.step_previews():
            self._preview_timer.stop()
        if self._surface.is_ready and not was_ready:
            self.canvas.refresh()
            self._show_page_status()

    def _on_viewport_resized(self) -> None:
        if self._surface is None:
            return
        self._surface.resize(self._container_width())
        self.canvas.refresh()

    def _on_selection_changed(self, field) -> None:
        self.properties.set_field(field)

    def _on_canvas_fields_changed(self) -> None:
        if self._surface is None:
            return
        self.properties.set_field(self.canvas.selected_field)
        self._show_page_status()

    def _on_field_edited(self, field_id: str, changes: dict) -> None:
        if self._surface is None or self._surface.field(field_id) is None:
            return
        self._surface.update_field(field_id, **changes)
        self.canvas.update()

    def _show_page_status(self) -> None:
        surface = self._surface
        if surface is None or not surface.is_ready:
            return
        count = len(surface.live_fields())
        loading = " (loading previews)" if surface.is_loading else ""
        self.statusBar().showMessage(
            f"Page {surface.current_page}/{surface.page_count}: {count} field(s){loading}"
        )

    def _container_width(self) -> float:
        return float(max(0, self.scroll_area.viewport().width() - _CANVAS_MARGIN))

    def _dispose_surface(self) -> None:
        self._preview_timer.stop()
        if self._surface is not None:
            self._surface.dispose()
            self._surface = None
        self.canvas.set_surface(None)
