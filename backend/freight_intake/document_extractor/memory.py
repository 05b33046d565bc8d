import contextlib
import logging
import threading
import tracemalloc

logger = logging.getLogger("freight.pdf")


class MemoryMonitor:
    """Soft per-extraction memory budget.

    Exceeding the budget never aborts the running extraction. It logs a warning
    and sets a one-shot hint that the next PDF method selection consumes.

    tracemalloc is process-wide, so overlapping extractions share one tracing
    session: it starts with the first active extraction, the peak is only reset
    when no other extraction is running, and tracing stops with the last one.
    Each extraction is charged the peak growth over its own starting usage.
    """

    def __init__(self, warning_threshold_mb: int):
        self.threshold_bytes = warning_threshold_mb * 1024 * 1024
        self._prefer_streaming = False
        self._lock = threading.Lock()
        self._active = 0
        self._owns_tracing = False

    def _enter(self) -> int:
        with self._lock:
            if self._active == 0:
                if not tracemalloc.is_tracing():
                    tracemalloc.start()
                    self._owns_tracing = True
                tracemalloc.reset_peak()
            self._active += 1
            current, _ = tracemalloc.get_traced_memory()
            return current

    def _exit(self, baseline: int) -> int:
        with self._lock:
            _, peak = tracemalloc.get_traced_memory()
            self._active -= 1
            if self._active == 0 and self._owns_tracing:
                tracemalloc.stop()
                self._owns_tracing = False
            return max(peak - baseline, 0)

    @contextlib.contextmanager
    def track(self, document_id: str | None = None, strategy: str | None = None):
        baseline = self._enter()
        try:
            yield
        finally:
            used = self._exit(baseline)
            if used > self.threshold_bytes:
                logger.warning(
                    "Memory budget exceeded for document %s (strategy %s): peak %.1f MB > %.1f MB",
                    document_id, strategy, used / 1048576, self.threshold_bytes / 1048576,
                )
                self.flag_exceeded()

    def flag_exceeded(self) -> None:
        with self._lock:
            self._prefer_streaming = True

    def consume_streaming_hint(self) -> bool:
        with self._lock:
            hint = self._prefer_streaming
            self._prefer_streaming = False
            return hint

    @property
    def prefer_streaming(self) -> bool:
        return self._prefer_streaming

    @property
    def active(self) -> int:
        return self._active
