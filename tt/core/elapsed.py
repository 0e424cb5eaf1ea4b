"""Elapsed-time arithmetic over task timer states. Nothing in here mutates a state."""

from dataclasses import dataclass
from tt.core.timer_state import TimerStatus


@dataclass(frozen=True)
class TimerSummary:
    """Day totals across every tracked task, in whole seconds."""
    total_logged_seconds: int
    total_break_seconds: int
    has_active_task: bool
    running_task_id: str | None


def _open_span_ms(state, now_ms, status):
    if state.status != status or state.open_span_start_ms is None:
        return 0
    return max(0, now_ms - state.open_span_start_ms)

def active_ms(state, now_ms):
    return state.elapsed_active_ms + _open_span_ms(state, now_ms, TimerStatus.RUNNING)

def break_ms(state, now_ms):
    return state.elapsed_break_ms + _open_span_ms(state, now_ms, TimerStatus.ON_BREAK)

def open_span_ms(state, now_ms):
    """Whatever the currently open span (work or break) has accrued so far."""
    return _open_span_ms(state, now_ms, state.status)

# Floored to whole seconds so displays don't flicker between ticks
def active_seconds(state, now_ms):
    return active_ms(state, now_ms) // 1000

def break_seconds(state, now_ms):
    return break_ms(state, now_ms) // 1000


def summarize(states, now_ms, running_task_id=None):
    states = list(states)
    return TimerSummary(
        total_logged_seconds=sum(active_ms(s, now_ms) for s in states) // 1000,
        total_break_seconds=sum(break_ms(s, now_ms) for s in states) // 1000,
        has_active_task=any(s.status == TimerStatus.RUNNING for s in states),
        running_task_id=running_task_id,
    )


def format_duration(seconds):
    """Format elapsed seconds as HH:MM:SS. Negative values clamp to zero."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
