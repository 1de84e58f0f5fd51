"""Progress reporting for long-running operations.

An operation emits any number of informational events followed by
exactly one terminal event, ``done`` or ``error``. Nothing may follow
the terminal event.

Text transports (SSE, the CLI) use ``ProgressEvent.to_line()``: the
completion event renders as ``[DONE]`` and a failure as
``ERROR: <diagnostic>``.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from .errors import ProgressClosedError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
ERROR_PREFIX = "ERROR: "


class EventKind(str, Enum):
    INFO = "info"
    STAGE = "stage"
    DONE = "done"
    ERROR = "error"


class Stage(str, Enum):
    """Pipeline state as seen by a progress consumer."""

    IDLE = "idle"
    CLONING = "cloning"
    UPDATING = "updating"
    INSTALLING_MAIN = "installing_main"
    CREATING_WORKTREE = "creating_worktree"
    PROPAGATING_FILES = "propagating_files"
    INSTALLING_WORKTREE = "installing_worktree"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    message: str = ""
    stage: Stage = Stage.IDLE
    error_type: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (EventKind.DONE, EventKind.ERROR)

    def to_line(self) -> str:
        """Render as a line of the text protocol."""
        if self.kind == EventKind.DONE:
            return DONE_SENTINEL
        if self.kind == EventKind.ERROR:
            return f"{ERROR_PREFIX}{self.message}"
        return self.message


ProgressSink = Callable[[ProgressEvent], None]


def line_sink(write: Callable[[str], None]) -> ProgressSink:
    """Adapt a consumer of text lines into a progress sink."""

    def sink(event: ProgressEvent) -> None:
        write(event.to_line())

    return sink


class ProgressReporter:
    """Emits the events of one operation to a sink.

    Thread-safe. A sink that raises is treated as a consumer that went
    away: the operation keeps running and later events are only logged.
    """

    def __init__(
        self,
        sink: Optional[ProgressSink] = None,
        tag: str = "",
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sink = sink
        self.tag = tag
        self.stage = Stage.IDLE
        self.closed = False
        self.detached = False
        self._clock = clock
        self._started = clock()
        self._last_step = self._started
        self._lock = threading.Lock()

    def info(self, message: str) -> None:
        self._emit(ProgressEvent(EventKind.INFO, message, self.stage))

    def enter(self, stage: Stage, message: str) -> None:
        """Move to ``stage``; step timing restarts here."""
        self.stage = stage
        self._last_step = self._clock()
        self._emit(ProgressEvent(EventKind.STAGE, message, stage))

    def step_done(self, message: str) -> None:
        """Report a finished step with its own and the total duration."""
        now = self._clock()
        step = now - self._last_step
        total = now - self._started
        self._last_step = now
        self.info(f"[+{step:.1f}s | {total:.1f}s total] ✓ {message}")

    def elapsed(self) -> float:
        return self._clock() - self._started

    def complete(self, message: Optional[str] = None) -> None:
        """Emit the completion event, preceded by a summary line."""
        if message:
            self.info(f"✓ {message}! Total time: {self.elapsed():.1f}s")
        self.stage = Stage.COMPLETE
        self._emit(ProgressEvent(EventKind.DONE, "", Stage.COMPLETE))

    def fail(self, error: Union[BaseException, str]) -> None:
        """Emit the error event carrying the raw diagnostic."""
        message = str(error) or type(error).__name__
        error_type = type(error).__name__ if isinstance(error, BaseException) else None
        self.stage = Stage.FAILED
        self._emit(ProgressEvent(EventKind.ERROR, message, Stage.FAILED, error_type))

    def _emit(self, event: ProgressEvent) -> None:
        with self._lock:
            if self.closed:
                raise ProgressClosedError(
                    f"Progress for {self.tag or 'operation'} already ended, cannot emit: {event.to_line()}"
                )
            if event.is_terminal:
                self.closed = True

            line = event.to_line()
            if self.tag:
                logger.info(f"[{self.tag}] {line}")
            else:
                logger.info(line)

            if self._sink is None or self.detached:
                return
            try:
                self._sink(event)
            except Exception as e:  # pylint: disable=broad-except
                self.detached = True
                logger.warning(f"Progress consumer failed, continuing without it: {e}")
