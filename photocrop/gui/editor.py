from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from PyQt6.QtCore import QEvent, Qt, pyqtSignal
from PyQt6.QtGui import QAction, QKeySequence, QPalette
from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDoubleSpinBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from photocrop.config import load_config, save_config
from photocrop.constants import SEND_TO_APP_ID, SUPPORTED_EXTENSIONS
from photocrop.errors import PhotoCropError
from photocrop.gui.preview_canvas import CropPreview
from photocrop.gui.utils import format_file_size
from photocrop.meta.geocode import AddressResolver
from photocrop.meta.rational import format_coordinate_text, parse_coordinate_text
from photocrop.meta.store import ExportOverrides
from photocrop.presets import AspectRatio, QualityTier
from photocrop.send_to_app import FileListServer
from photocrop.viewport.session import ViewportSession

LOGGER = logging.getLogger(__name__)


class PhotoCropWindow(QMainWindow):
    address_resolved = pyqtSignal(object)

    def __init__(self, startup_files: list[Path] | None = None, config: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.setWindowTitle("PhotoCrop")
        self.config = config if config is not None else load_config()
        self.resize(int(self.config["window_width"]), int(self.config["window_height"]))
        self.setMinimumSize(720, 520)

        self.session = ViewportSession(
            aspect=self.config["aspect"],
            quality=self.config["quality"],
            zoom_mode=self.config["zoom_mode"],
            overrides=ExportOverrides(software=self.config["software"], editor=self.config["editor"]),
            jpeg_quality=int(self.config["jpeg_quality"]),
        )
        self.resolver: AddressResolver | None = None
        if self.config.get("geocode"):
            self.resolver = AddressResolver(timeout=float(self.config["geocode_timeout"]))
        self.address_resolved.connect(self._on_address_resolved)

        self._setup_ui()
        self._setup_shortcuts()
        self._apply_system_adaptive_style()
        self._set_status("Ready. Open an image to start.")

        self.file_server = FileListServer(SEND_TO_APP_ID, self)
        self.file_server.files_received.connect(self._on_files_received)
        self.file_server.start()

        if startup_files:
            self.open_image(startup_files[0])

    # ------------------------------------------------------------------ layout

    def _setup_ui(self) -> None:
        root = QWidget()
        self.setCentralWidget(root)
        root_layout = QVBoxLayout(root)
        root_layout.setContentsMargins(8, 8, 8, 8)
        root_layout.setSpacing(6)

        controls = QHBoxLayout()
        self.aspect_combo = QComboBox()
        self.aspect_combo.addItems([item.label for item in AspectRatio])
        self.aspect_combo.setCurrentText(self.session.aspect.label)
        self.aspect_combo.currentTextChanged.connect(self._on_aspect_changed)
        controls.addWidget(self.aspect_combo)

        self.quality_combo = QComboBox()
        self.quality_combo.addItems([item.label for item in QualityTier])
        self.quality_combo.setCurrentText(self.session.quality.label)
        self.quality_combo.currentTextChanged.connect(self._on_quality_changed)
        controls.addWidget(self.quality_combo)

        for label, handler in (
            ("Flip", self.flip_image),
            ("Rotate Left", lambda: self.rotate_image(False)),
            ("Rotate", lambda: self.rotate_image(True)),
            ("Zoom In", lambda: self.step_zoom(False)),
            ("Zoom Out", lambda: self.step_zoom(True)),
            ("Show All", self.show_all),
            ("Fill", self.fill),
        ):
            button = QPushButton(label)
            button.clicked.connect(handler)
            controls.addWidget(button)

        self.angle_spin = QDoubleSpinBox()
        self.angle_spin.setRange(-180.0, 180.0)
        self.angle_spin.setDecimals(1)
        self.angle_spin.setSingleStep(0.5)
        self.angle_spin.setSuffix("°")
        self.angle_spin.editingFinished.connect(self.apply_angle)
        controls.addWidget(QLabel("Angle"))
        controls.addWidget(self.angle_spin)
        controls.addStretch(1)
        root_layout.addLayout(controls)

        self.preview = CropPreview(self.session)
        self.preview.setObjectName("PreviewLabel")
        self.preview.view_changed.connect(self._on_view_changed)
        self.preview.operation_failed.connect(lambda message: self._set_status(f"Rotate failed: {message}"))
        root_layout.addWidget(self.preview, stretch=1)

        gps_row = QHBoxLayout()
        gps_row.addWidget(QLabel("GPS"))
        self.gps_input = QLineEdit()
        self.gps_input.setPlaceholderText("lat, lon")
        self.gps_input.returnPressed.connect(self.apply_gps)
        gps_row.addWidget(self.gps_input, stretch=1)
        gps_apply = QPushButton("Set")
        gps_apply.clicked.connect(self.apply_gps)
        gps_row.addWidget(gps_apply)
        gps_clear = QPushButton("Clear")
        gps_clear.clicked.connect(self.clear_gps)
        gps_row.addWidget(gps_clear)
        self.address_label = QLabel("")
        self.address_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        gps_row.addWidget(self.address_label, stretch=2)
        root_layout.addLayout(gps_row)

        storage_row = QHBoxLayout()
        storage_row.addWidget(QLabel("Storage folder:"))
        self.storage_input = QLineEdit(str(self.config.get("storage_folder") or ""))
        self.storage_input.editingFinished.connect(self._on_storage_edited)
        storage_row.addWidget(self.storage_input, stretch=1)
        browse_button = QPushButton("Browse...")
        browse_button.clicked.connect(self.pick_storage_folder)
        storage_row.addWidget(browse_button)
        save_button = QPushButton("Save")
        save_button.clicked.connect(self.save_crop)
        storage_row.addWidget(save_button)
        root_layout.addLayout(storage_row)

        self.setStatusBar(self.statusBar())

    def _setup_shortcuts(self) -> None:
        action_open = QAction(self)
        action_open.setShortcut(QKeySequence.StandardKey.Open)
        action_open.triggered.connect(self.pick_image)
        self.addAction(action_open)

        action_save = QAction(self)
        action_save.setShortcut(QKeySequence.StandardKey.Save)
        action_save.triggered.connect(self.save_crop)
        self.addAction(action_save)

        action_show_all = QAction(self)
        action_show_all.setShortcut(QKeySequence("Ctrl+0"))
        action_show_all.triggered.connect(self.show_all)
        self.addAction(action_show_all)

    def _apply_system_adaptive_style(self) -> None:
        palette = self.palette()
        window_color = palette.color(QPalette.ColorRole.Window)
        text_color = palette.color(QPalette.ColorRole.Text)
        dark_mode = window_color.lightness() < 128
        border_color = window_color.lighter(135) if dark_mode else window_color.darker(130)
        self.setStyleSheet(
            f"""
            QWidget {{
                font-size: 13px;
            }}
            QLabel {{
                color: {text_color.name()};
            }}
            QLabel#PreviewLabel {{
                border: 1px solid {border_color.name()};
                background: #000000;
                color: #BBBBBB;
            }}
            """
        )

    def changeEvent(self, event) -> None:  # type: ignore[override]
        if event.type() in {QEvent.Type.PaletteChange, QEvent.Type.ApplicationPaletteChange}:
            self._apply_system_adaptive_style()
        super().changeEvent(event)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.config["window_width"] = self.width()
        self.config["window_height"] = self.height()
        self._save_settings()
        if self.resolver is not None:
            self.resolver.shutdown()
        self.file_server.close()
        self.session.close()
        super().closeEvent(event)

    # ------------------------------------------------------------------ helpers

    def _set_status(self, message: str) -> None:
        self.statusBar().showMessage(message)

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.critical(self, title, message)

    def _save_settings(self) -> None:
        try:
            save_config(self.config)
        except OSError as exc:
            LOGGER.warning("settings not saved: %s", exc)

    def _refresh_gps(self) -> None:
        gps = self.session.gps
        if gps is None:
            self.gps_input.setText("")
            self.address_label.setText("")
            if self.resolver is not None:
                self.resolver.cancel_pending()
            return
        self.gps_input.setText(format_coordinate_text(*gps))
        if self.resolver is None:
            self.address_label.setText("")
            return
        self.address_label.setText("Looking up address...")
        self.resolver.request(gps[0], gps[1], callback=self.address_resolved.emit)

    def _on_address_resolved(self, address: object) -> None:
        self.address_label.setText(str(address) if address else "Address unavailable")

    def _sync_angle(self) -> None:
        # flips negate the angle and right-drag sets it outside the spin box
        angle = self.session.transform.angle
        if self.angle_spin.value() != angle:
            self.angle_spin.blockSignals(True)
            self.angle_spin.setValue(angle)
            self.angle_spin.blockSignals(False)

    def _on_view_changed(self) -> None:
        self._sync_angle()
        if not self.session.is_loaded:
            return
        size = self.session.output_size
        crop = self.session.crop_rect()
        target = f"{size[0]}x{size[1]}" if size else "original"
        warning = " (upscaled)" if self.session.upscale_warning else ""
        self._set_status(f"Zoom {self.session.state.zoom:.2f} | crop {crop.width}x{crop.height} -> {target}{warning}")

    def _on_files_received(self, files: list) -> None:
        if files:
            self.open_image(Path(files[0]))
        self.showNormal()
        self.raise_()
        self.activateWindow()

    def _run(self, label: str, action) -> None:
        if not self.session.is_loaded:
            self._set_status("Open an image first.")
            return
        try:
            action()
        except PhotoCropError as exc:
            self._set_status(f"{label} failed: {exc}")
            return
        self.preview.refresh()

    # ------------------------------------------------------------------ actions

    def pick_image(self) -> None:
        ext_pattern = " ".join(f"*{ext}" for ext in sorted(SUPPORTED_EXTENSIONS))
        file_path, _ = QFileDialog.getOpenFileName(
            self,
            "Open image",
            "",
            f"Supported Images ({ext_pattern});;All Files (*.*)",
        )
        if not file_path:
            return
        self.open_image(Path(file_path))

    def open_image(self, path: Path) -> None:
        try:
            self.preview.sync_display_size()
            source = self.session.load_file(path)
        except PhotoCropError as exc:
            self._show_error("Image Error", str(exc))
            self._set_status(f"Error opening file: {exc}")
            return

        self.preview.refresh()
        self._refresh_gps()
        try:
            file_size = format_file_size(path.stat().st_size)
        except OSError:
            file_size = "?"
        stamp = datetime.now().strftime("%H:%M:%S")
        self._set_status(f"[{stamp}] Opened: {path.name} ({file_size}) - {source.width}x{source.height}")

    def flip_image(self) -> None:
        self._run("Flip", self.session.flip_horizontal)

    def rotate_image(self, clockwise: bool) -> None:
        self._run("Rotate", lambda: self.session.rotate90(clockwise))

    def apply_angle(self) -> None:
        if not self.session.is_loaded:
            return
        angle = self.angle_spin.value()
        if angle == self.session.transform.angle:
            return
        self._run("Rotate", lambda: self.session.rotate_arbitrary(angle))

    def step_zoom(self, zoom_out: bool) -> None:
        self._run("Zoom", lambda: self.session.step_zoom(zoom_out))

    def show_all(self) -> None:
        self._run("Show All", self.session.show_all)

    def fill(self) -> None:
        self._run("Fill", self.session.fill)

    def _on_aspect_changed(self, label: str) -> None:
        self.session.set_aspect(label)
        self.config["aspect"] = self.session.aspect.label
        self._save_settings()
        self.preview.refresh()

    def _on_quality_changed(self, label: str) -> None:
        self.session.set_quality(label)
        self.config["quality"] = self.session.quality.label
        self._save_settings()
        self.preview.refresh()

    def apply_gps(self) -> None:
        text = self.gps_input.text().strip()
        if not text:
            self.clear_gps()
            return
        parsed = parse_coordinate_text(text)
        if parsed is None:
            self._set_status(f"Invalid GPS: {text!r}, expected 'lat, lon'")
            return
        lat, lon = parsed
        try:
            self.session.set_gps(lat, lon)
        except ValueError as exc:
            self._set_status(f"Invalid GPS: {exc}")
            return
        self._refresh_gps()
        self._set_status(f"GPS set to {format_coordinate_text(lat, lon)}")

    def clear_gps(self) -> None:
        self.session.clear_gps()
        self._refresh_gps()
        self._set_status("GPS removed")

    def pick_storage_folder(self) -> None:
        folder = QFileDialog.getExistingDirectory(self, "Select storage folder", self.storage_input.text())
        if not folder:
            return
        self.storage_input.setText(folder)
        self._on_storage_edited()

    def _on_storage_edited(self) -> None:
        self.config["storage_folder"] = self.storage_input.text().strip()
        self._save_settings()

    def save_crop(self) -> None:
        if not self.session.is_loaded:
            self._set_status("No image to save")
            return
        folder_text = self.storage_input.text().strip()
        if not folder_text:
            QMessageBox.warning(self, "No Storage Folder", "Please select a storage folder first.")
            return
        if self.session.upscale_warning:
            answer = QMessageBox.question(
                self,
                "Low resolution",
                "The crop has fewer pixels than the export size and will be upscaled. Save anyway?",
            )
            if answer != QMessageBox.StandardButton.Yes:
                return
        try:
            saved, skipped, _ = self.session.save(Path(folder_text))
        except (PhotoCropError, ValueError, OSError) as exc:
            self._show_error("Save Error", str(exc))
            self._set_status(f"Save failed: {exc}")
            return
        note = f" ({len(skipped)} metadata tag(s) skipped)" if skipped else ""
        self._set_status(f"Saved: {saved}{note}")


def launch_gui(startup_files: list[Path] | None = None) -> None:
    app = QApplication.instance() or QApplication(sys.argv)
    window = PhotoCropWindow(startup_files=startup_files)
    window.show()
    app.exec()
