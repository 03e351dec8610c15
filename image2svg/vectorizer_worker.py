"""Background worker running the vectorization pipeline off the UI thread."""

import logging
from collections import deque

from PyQt6.QtCore import QMutex, QMutexLocker, QThread, QWaitCondition, pyqtSignal

from image2svg.image_processing import VectorizationPipeline
from image2svg.models import PipelineStage, ProcessingRequest, ProcessingResult

logger = logging.getLogger(__name__)


class VectorizerWorker(QThread):
    """Single worker thread processing requests strictly one at a time.

    AIDEV-NOTE: Requester and worker only exchange immutable request and
    result values: requests through a locked FIFO, results through the
    result_ready signal. Requests are never cancelled mid-flight; stale
    results are discarded by the requester via correlation id.
    """

    result_ready = pyqtSignal(object)  # ProcessingResult
    stage_changed = pyqtSignal(object, object)  # correlation id, PipelineStage

    def __init__(self, pipeline: VectorizationPipeline | None = None, image_store=None):
        super().__init__()
        self.pipeline = pipeline or VectorizationPipeline(image_store=image_store)
        # Any callback already on the pipeline keeps firing before the signal
        self._previous_on_stage = self.pipeline.on_stage
        self.pipeline.on_stage = self._report_stage

        self.request_queue: deque[ProcessingRequest] = deque()
        self.queue_lock = QMutex()
        self.queue_not_empty = QWaitCondition()
        self.running = True

    # -------------------------------------------------------------

    def run(self):
        while True:
            with QMutexLocker(self.queue_lock):
                while self.running and not self.request_queue:
                    self.queue_not_empty.wait(self.queue_lock, 100)
                if not self.running:
                    break
                request = self.request_queue.popleft()

            result = self.pipeline.process(request)
            self.result_ready.emit(result)

        self._drain("Worker stopped")

    def _report_stage(self, correlation_id, stage: PipelineStage):
        if self._previous_on_stage is not None:
            self._previous_on_stage(correlation_id, stage)
        self.stage_changed.emit(correlation_id, stage)

    def _drain(self, reason: str):
        """Answer every queued request with a failure."""
        with QMutexLocker(self.queue_lock):
            pending = list(self.request_queue)
            self.request_queue.clear()

        for request in pending:
            self.result_ready.emit(ProcessingResult.failure(request.correlation_id, reason))

    # -------------------------------------------------------------
    # API methods
    # -------------------------------------------------------------

    def submit(self, request: ProcessingRequest):
        """Thread-safe enqueue."""
        with QMutexLocker(self.queue_lock):
            if not self.running:
                raise RuntimeError("Worker has been stopped")
            self.request_queue.append(request)
            self.queue_not_empty.wakeOne()
        logger.debug("Queued request %r", request.correlation_id)

    def submit_message(self, message: dict):
        """Enqueue a request in channel message form."""
        self.submit(ProcessingRequest.from_message(message))

    def pending_count(self) -> int:
        with QMutexLocker(self.queue_lock):
            return len(self.request_queue)

    def stop(self):
        """Finish the in-flight request, fail the queued ones and exit."""
        with QMutexLocker(self.queue_lock):
            self.running = False
            self.queue_not_empty.wakeAll()

        if not self.isRunning():
            self._drain("Worker stopped")
