"""Requester side of the vectorizer: debouncing, dispatch and result intake."""

from __future__ import annotations

import logging
from typing import Any

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from image2svg.image_processing import apply_hidden_colors
from image2svg.models import DEBOUNCE_MS, ProcessingRequest, ProcessingResult, VectorizerSettings
from image2svg.vectorizer_worker import VectorizerWorker

logger = logging.getLogger(__name__)


class PreviewController(QObject):
    """Drives re-processing of the selected image as settings change.

    AIDEV-NOTE: Settings edits are debounced, image selection dispatches
    immediately. Requests are fire-and-forget; a result is only rendered if
    its correlation id still matches the selected image. A failure keeps
    the last successful render on screen.
    """

    svg_changed = pyqtSignal(str)  # visible markup
    palette_changed = pyqtSignal(object)  # frozenset of fill values
    error_occurred = pyqtSignal(str)
    processing_changed = pyqtSignal(bool)

    def __init__(
        self,
        worker: VectorizerWorker,
        settings: VectorizerSettings | None = None,
        debounce_ms: int = DEBOUNCE_MS,
        parent: QObject | None = None,
    ):
        super().__init__(parent)
        self.worker = worker
        self.settings = settings or VectorizerSettings()
        self.current_image_id: Any = None

        self.svg: str | None = None
        self.detected_colors: frozenset = frozenset()
        self.hidden_colors: set[str] = set()
        self.discarded_count = 0
        self._in_flight = 0

        self.debounce_timer = QTimer(self)
        self.debounce_timer.setSingleShot(True)
        self.debounce_timer.setInterval(debounce_ms)
        self.debounce_timer.timeout.connect(self.dispatch)

        self.worker.result_ready.connect(self.handle_result)

    @property
    def processing(self) -> bool:
        return self._in_flight > 0

    # -------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------

    def select_image(self, image_id: Any):
        """Switch the selected image and process it immediately."""
        self.debounce_timer.stop()
        self.current_image_id = image_id

        if image_id is None:
            self.svg = None
            self.detected_colors = frozenset()
            self.svg_changed.emit("")
            self.palette_changed.emit(self.detected_colors)
            return

        self.dispatch()

    def update_settings(self, **changes: Any):
        """Apply setting edits and restart the debounce window."""
        self.settings = self.settings.with_changes(**changes)
        self.debounce_timer.start()

    def reset_settings(self):
        self.settings = VectorizerSettings()
        self.debounce_timer.start()

    def dispatch(self):
        """Send a request for the selected image with a settings snapshot."""
        if self.current_image_id is None:
            return

        request = ProcessingRequest.create(self.current_image_id, self.settings)
        self.worker.submit(request)
        self._set_in_flight(self._in_flight + 1)

    # -------------------------------------------------------------
    # Results
    # -------------------------------------------------------------

    def handle_result(self, result: ProcessingResult):
        self._set_in_flight(max(0, self._in_flight - 1))

        if result.correlation_id != self.current_image_id:
            self.discarded_count += 1
            logger.debug(
                "Discarding stale result for %r (current %r)",
                result.correlation_id,
                self.current_image_id,
            )
            return

        if not result.succeeded:
            # Keep the previous render in place
            logger.warning("Vectorization error: %s", result.error)
            self.error_occurred.emit(result.error)
            return

        self.svg = result.svg
        self.detected_colors = result.palette
        self.palette_changed.emit(self.detected_colors)
        self.svg_changed.emit(self.visible_svg())

    def _set_in_flight(self, count: int):
        was_processing = self.processing
        self._in_flight = count
        if self.processing != was_processing:
            self.processing_changed.emit(self.processing)

    # -------------------------------------------------------------
    # Colour visibility
    # -------------------------------------------------------------

    def toggle_hidden_color(self, color: str):
        if color in self.hidden_colors:
            self.hidden_colors.discard(color)
        else:
            self.hidden_colors.add(color)

        if self.svg is not None:
            self.svg_changed.emit(self.visible_svg())

    def visible_svg(self) -> str:
        """Current render with hidden colours suppressed."""
        if self.svg is None:
            return ""
        return apply_hidden_colors(self.svg, self.hidden_colors)
