"""Per-task timer state, pure logic, no Qt."""

from dataclasses import dataclass
from enum import Enum


class TimerStatus(str, Enum):
    PAUSED = "paused"
    RUNNING = "running"
    ON_BREAK = "break"


@dataclass
class TaskTimerState:
    """Tracks work and break time for one task as closed accumulators plus one open span.

    Timestamps are whole milliseconds from the engine's monotonic clock, so
    they are only meaningful inside the process that recorded them.
    ``open_span_start_ms`` is set exactly while the task is running or on
    break.
    """

    task_id: str
    status: TimerStatus = TimerStatus.PAUSED
    elapsed_active_ms: int = 0
    elapsed_break_ms: int = 0
    open_span_start_ms: int | None = None

    def open_span(self, status, at_ms):
        self.status = status
        self.open_span_start_ms = at_ms

    def close_span(self, at_ms):
        """Fold the open span into its accumulator. Status is left alone."""
        if self.open_span_start_ms is None:
            return
        delta = max(0, at_ms - self.open_span_start_ms)
        if self.status == TimerStatus.RUNNING:
            self.elapsed_active_ms += delta
        elif self.status == TimerStatus.ON_BREAK:
            self.elapsed_break_ms += delta
        self.open_span_start_ms = None

    def freeze(self, at_ms):
        """Snapshot the open span into its accumulator without ending it."""
        if self.open_span_start_ms is not None:
            self.close_span(at_ms)
            self.open_span_start_ms = at_ms

    def reset(self):
        self.status = TimerStatus.PAUSED
        self.elapsed_active_ms = 0
        self.elapsed_break_ms = 0
        self.open_span_start_ms = None


# Reads a break end target however callers spell it: a TimerStatus or its value, any case. Only paused and running
# are targets; anything else comes back as None.
def parse_break_target(target):
    if isinstance(target, TimerStatus):
        status = target
    else:
        try:
            status = TimerStatus(str(target).lower())
        except ValueError:
            return None
    if status in (TimerStatus.PAUSED, TimerStatus.RUNNING):
        return status
    return None
