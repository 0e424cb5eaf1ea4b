import json
from datetime import datetime
from tt.common.logger import log
from tt.common.setup import PATHS, ensure_directory
from tt.core.elapsed import open_span_ms
from tt.core.timer_state import TaskTimerState, TimerStatus
from tt.util.misc import now_iso

_SCHEMA_VERSION = 1

SNAPSHOT_DIR = PATHS.snapshots

# Builds a JSON-ready dict of every given timer. Open spans are reported as how much they've accrued by now_ms,
# since the monotonic timestamps themselves mean nothing outside this process.
def build_snapshot(timers, now_ms):
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "timers": {
            t.task_id: {
                "status": t.status.value,
                "elapsed_active_ms": t.elapsed_active_ms,
                "elapsed_break_ms": t.elapsed_break_ms,
                "open_span_ms": open_span_ms(t, now_ms),
            }
            for t in timers
        },
    }

# Writes the snapshot as JSON, to SNAPSHOT_DIR/timers_<timestamp>.json unless a path is given.
def save_snapshot(snapshot, path=None):
    if path is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = ensure_directory(SNAPSHOT_DIR) / f"timers_{timestamp}.json"
    else:
        ensure_directory(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2)
    log.info(f"Saved timer snapshot with {len(snapshot.get('timers', {}))} timers to '{path}'")
    return path

# Reads a snapshot back from disk. Returns None (and warns) if it's missing or isn't a usable snapshot.
def load_snapshot(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
        if not isinstance(snapshot, dict) or not isinstance(snapshot.get("timers"), dict):
            raise TypeError("Snapshot has no 'timers' object")
    except (FileNotFoundError, json.JSONDecodeError, OSError, TypeError):
        log.warning(f"Ran into an error while trying to load snapshot '{path}', ignoring it.",exc_info=True)
        return None
    log.info(f"Successfully loaded timer snapshot from '{path}'.")
    return snapshot


def _non_negative_ms(value):
    # bool slips through isinstance(int), but True ms is never meant
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number of milliseconds, got {value!r}")
    return max(0, int(value))

# Turns a snapshot's timer entries into fresh paused states. Whatever an open span had accrued gets folded into
# the accumulator matching the status it was saved with. Malformed entries are skipped with a warning.
def states_from_snapshot(snapshot):
    if not isinstance(snapshot, dict) or not isinstance(snapshot.get("timers"), dict):
        log.warning(f"Not a usable timer snapshot, nothing restored: {snapshot!r:.200}")
        return []

    states = []
    for task_id, entry in snapshot["timers"].items():
        try:
            status = TimerStatus(entry.get("status", TimerStatus.PAUSED.value))
            active = _non_negative_ms(entry.get("elapsed_active_ms", 0))
            on_break = _non_negative_ms(entry.get("elapsed_break_ms", 0))
            span = _non_negative_ms(entry.get("open_span_ms", 0))
        except (AttributeError, TypeError, ValueError):
            log.warning(f"Skipping malformed snapshot entry for task '{task_id}': {entry!r}")
            continue

        if status == TimerStatus.RUNNING:
            active += span
        elif status == TimerStatus.ON_BREAK:
            on_break += span
        states.append(TaskTimerState(str(task_id), elapsed_active_ms=active, elapsed_break_ms=on_break))
    return states
