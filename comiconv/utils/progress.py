"""
Progress reporting side channel.

The pipeline never renders anything itself; it reports per-entry events to an
injected sink. Calls arrive from worker threads but are serialized by the
scheduler, so sinks need no locking of their own.
"""
import logging
from typing import Protocol

# Set up logging
logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    """Receiver of per-entry progress events."""

    def on_start(self, index: int, name: str) -> None:
        ...

    def on_done(self, index: int, name: str, size_delta: int) -> None:
        ...

    def on_error(self, index: int, name: str, error: Exception) -> None:
        ...


class NullProgressSink:
    """Sink that discards every event."""

    def on_start(self, index: int, name: str) -> None:
        pass

    def on_done(self, index: int, name: str, size_delta: int) -> None:
        pass

    def on_error(self, index: int, name: str, error: Exception) -> None:
        pass


class LoggingProgressSink:
    """Sink that writes events to the log, counting completed entries."""

    def __init__(self, total: int = 0, log: logging.Logger = logger):
        self.total = total
        self.completed = 0
        self.log = log

    def on_start(self, index: int, name: str) -> None:
        self.log.debug(f"Converting [{index}] {name}")

    def on_done(self, index: int, name: str, size_delta: int) -> None:
        self.completed += 1
        self.log.info(f"[{self.completed}/{self.total or '?'}] {name} ({size_delta:+d} bytes)")

    def on_error(self, index: int, name: str, error: Exception) -> None:
        self.completed += 1
        self.log.warning(f"[{self.completed}/{self.total or '?'}] {name} failed: {error}")
