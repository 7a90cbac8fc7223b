"""CropPreview widget: shows the session's display frame under the crop overlay."""
from __future__ import annotations

from PyQt6.QtCore import QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QPainter, QPainterPath, QPen, QPixmap
from PyQt6.QtWidgets import QLabel, QWidget

from photocrop.errors import PhotoCropError
from photocrop.gui.utils import pil_to_qpixmap
from photocrop.models import Point
from photocrop.viewport.session import ViewportSession

OVERLAY_SHADE_ALPHA = 150
OVERLAY_BORDER_COLOR = "#FFFFFF"
UPSCALE_BORDER_COLOR = "#FF3B30"
ROTATE_GUIDE_COLOR = "#2EFF55"


class CropPreview(QLabel):
    view_changed = pyqtSignal()
    operation_failed = pyqtSignal(str)

    def __init__(self, session: ViewportSession, parent: QWidget | None = None) -> None:
        super().__init__("Open an image to start.", parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setMinimumSize(240, 180)
        self.setMouseTracking(False)
        self._session = session
        self._pixmap: QPixmap | None = None
        self._dragging = False
        self._drag_origin = QPointF(0.0, 0.0)
        self._pan_origin: Point | None = None
        self._rotating = False
        self._rotate_origin = QPointF(0.0, 0.0)
        self._rotate_current = QPointF(0.0, 0.0)

    def set_session(self, session: ViewportSession) -> None:
        self._session = session
        self.sync_display_size()

    def sync_display_size(self) -> None:
        content = self.contentsRect()
        self._session.resize_display(content.width(), content.height())
        self.refresh()

    def refresh(self) -> None:
        frame = self._session.frame
        if frame is None:
            self._pixmap = None
            self.setText("Open an image to start." if not self._session.is_loaded else "")
        else:
            self._pixmap = pil_to_qpixmap(frame)
            self.setText("")
        self._update_cursor()
        self.update()
        self.view_changed.emit()

    def _update_cursor(self) -> None:
        if not self._session.is_loaded:
            self.unsetCursor()
            return
        if self._dragging:
            self.setCursor(Qt.CursorShape.ClosedHandCursor)
            return
        self.setCursor(Qt.CursorShape.OpenHandCursor)

    def resizeEvent(self, event) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.sync_display_size()

    def wheelEvent(self, event) -> None:  # type: ignore[override]
        if not self._session.is_loaded:
            super().wheelEvent(event)
            return
        delta = event.angleDelta().y()
        if delta == 0:
            event.ignore()
            return
        content = self.contentsRect()
        if content.width() <= 0 or content.height() <= 0:
            event.ignore()
            return
        pos = event.position()
        frac = (
            (pos.x() - content.left()) / float(content.width()),
            (pos.y() - content.top()) / float(content.height()),
        )
        fine = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        # wheel up shows less of the canvas
        if self._session.zoom_at_cursor(frac, zoom_out=delta < 0, fine_step=fine):
            self.refresh()
        event.accept()

    def mousePressEvent(self, event) -> None:  # type: ignore[override]
        if not self._session.is_loaded:
            super().mousePressEvent(event)
            return
        if event.button() == Qt.MouseButton.LeftButton:
            self._dragging = True
            self._drag_origin = event.position()
            self._pan_origin = self._session.state.pan_center
            self._update_cursor()
            event.accept()
            return
        if event.button() == Qt.MouseButton.RightButton:
            self._rotating = True
            self._rotate_origin = event.position()
            self._rotate_current = event.position()
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # type: ignore[override]
        if self._dragging:
            delta = event.position() - self._drag_origin
            if self._session.pan(int(round(delta.x())), int(round(delta.y())), origin=self._pan_origin):
                self.refresh()
            event.accept()
            return
        if self._rotating:
            self._rotate_current = event.position()
            self.update()
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.button() == Qt.MouseButton.LeftButton and self._dragging:
            self._dragging = False
            self._pan_origin = None
            self._update_cursor()
            event.accept()
            return
        if event.button() == Qt.MouseButton.RightButton and self._rotating:
            self._rotating = False
            delta = event.position() - self._rotate_origin
            try:
                angle = self._session.rotate_from_drag(delta.x(), delta.y())
            except PhotoCropError as exc:
                self.operation_failed.emit(str(exc))
                angle = None
            if angle is not None:
                self.refresh()
            else:
                self.update()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    def paintEvent(self, event) -> None:  # type: ignore[override]
        super().paintEvent(event)
        if self._pixmap is None:
            return

        content = self.contentsRect()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        painter.setClipRect(content)
        painter.drawPixmap(content.topLeft(), self._pixmap)

        overlay = self._session.display_overlay()
        if not overlay.is_empty:
            crop_rect = QRectF(
                content.left() + overlay.x,
                content.top() + overlay.y,
                overlay.width,
                overlay.height,
            )
            shade_path = QPainterPath()
            shade_path.addRect(QRectF(content))
            keep_path = QPainterPath()
            keep_path.addRect(crop_rect)
            painter.fillPath(shade_path.subtracted(keep_path), QColor(0, 0, 0, OVERLAY_SHADE_ALPHA))

            warn = self._session.upscale_warning
            pen = QPen(QColor(UPSCALE_BORDER_COLOR if warn else OVERLAY_BORDER_COLOR))
            pen.setWidth(3 if warn else 1)
            pen.setJoinStyle(Qt.PenJoinStyle.MiterJoin)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.setPen(pen)
            painter.drawRect(crop_rect)

        if self._rotating:
            guide = QPen(QColor(ROTATE_GUIDE_COLOR))
            guide.setWidth(2)
            painter.setPen(guide)
            painter.drawLine(self._rotate_origin, self._rotate_current)

        painter.end()
