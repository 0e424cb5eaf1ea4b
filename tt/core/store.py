"""Authoritative task timer map: every transition, query, and the single-running rule."""

import threading
from dataclasses import replace
from tt.common.logger import log
from tt.core import elapsed
from tt.core.snapshot import build_snapshot, states_from_snapshot
from tt.core.timer_state import TaskTimerState, TimerStatus, parse_break_target


class TimerStore:
    """Owns the ``task_id -> TaskTimerState`` map for one engine.

    At most one task is ever RUNNING; ``_run`` is the only place a task
    becomes running, and it pauses whichever task was running before. Being
    on break does not count as running, so a task on break and a different
    running task can coexist.

    Unknown ids are created on first touch (reads included) as paused with
    nothing accumulated, so no operation fails for any id. Every operation
    holds one lock over the whole map; subscribers are notified after it is
    released, and only when something actually changed.
    """

    def __init__(self, clock, bus, default_break_target=TimerStatus.PAUSED):
        self.clock = clock
        self.bus = bus
        self.default_break_target = default_break_target
        self._timers = {}
        self._running_id = None
        self._lock = threading.RLock()

    #region === Internals ===

    def _ensure(self, task_id):
        state = self._timers.get(task_id)
        if state is None:
            state = TaskTimerState(task_id)
            self._timers[task_id] = state
        return state

    def _pause(self, state, now):
        state.close_span(now)
        state.status = TimerStatus.PAUSED
        if self._running_id == state.task_id:
            self._running_id = None

    def _run(self, state, now):
        if self._running_id is not None and self._running_id != state.task_id:
            previous = self._timers[self._running_id]
            self._pause(previous, now)
            log.debug(f"Paused timer '{previous.task_id}' at mono {now} so '{state.task_id}' can run")
        # Closes the task's own break span, if any
        state.close_span(now)
        state.open_span(TimerStatus.RUNNING, now)
        self._running_id = state.task_id

    def _break_target(self, target):
        if target is None:
            return self.default_break_target
        status = parse_break_target(target)
        if status is not None:
            return status
        log.warning(f"Invalid break end target {target!r}, falling back to '{self.default_break_target.value}'")
        return self.default_break_target

    #endregion === Internals ===

    #region === Transitions ===

    # Caller holds the lock and notifies afterwards. Returns whether anything changed.
    def _start_locked(self, state):
        if state.status == TimerStatus.RUNNING:
            return False
        now = self.clock.sample()
        self._run(state, now)
        log.debug(f"Started timer '{state.task_id}' at mono {now}")
        return True

    def start(self, task_id):
        with self._lock:
            changed = self._start_locked(self._ensure(task_id))
        if changed:
            self.bus.notify()

    def pause(self, task_id):
        with self._lock:
            state = self._ensure(task_id)
            if state.status != TimerStatus.RUNNING:
                return
            now = self.clock.sample()
            self._pause(state, now)
            log.debug(f"Paused timer '{task_id}' at mono {now}, active total {state.elapsed_active_ms} ms")
        self.bus.notify()

    # Only picks a paused task back up; running or on-break tasks are left alone.
    def resume(self, task_id):
        with self._lock:
            state = self._ensure(task_id)
            if state.status != TimerStatus.PAUSED:
                return
            self._start_locked(state)
        self.bus.notify()

    def break_start(self, task_id):
        with self._lock:
            state = self._ensure(task_id)
            if state.status == TimerStatus.ON_BREAK:
                return
            now = self.clock.sample()
            if state.status == TimerStatus.RUNNING:
                self._pause(state, now)
            state.open_span(TimerStatus.ON_BREAK, now)
            log.debug(f"Timer '{task_id}' went on break at mono {now}")
        self.bus.notify()

    # Ends a break into `target` (paused or running). Anything unrecognised falls back to the default target.
    def break_end(self, task_id, target=None):
        with self._lock:
            state = self._ensure(task_id)
            if state.status != TimerStatus.ON_BREAK:
                return
            target = self._break_target(target)
            now = self.clock.sample()
            state.close_span(now)
            if target == TimerStatus.RUNNING:
                self._run(state, now)
            else:
                state.status = TimerStatus.PAUSED
            log.debug(f"Timer '{task_id}' ended break at mono {now} into '{target.value}', break total {state.elapsed_break_ms} ms")
        self.bus.notify()

    def reset(self, task_id):
        with self._lock:
            state = self._ensure(task_id)
            if self._running_id == task_id:
                self._running_id = None
            state.reset()
            log.debug(f"Reset timer '{task_id}' to 0")
        self.bus.notify()

    #endregion === Transitions ===

    #region === Queries ===

    def get_current_time(self, task_id):
        with self._lock:
            return elapsed.active_seconds(self._ensure(task_id), self.clock.sample())

    def get_break_time(self, task_id):
        with self._lock:
            return elapsed.break_seconds(self._ensure(task_id), self.clock.sample())

    def get_status(self, task_id):
        with self._lock:
            return self._ensure(task_id).status

    def is_running(self, task_id):
        return self.get_status(task_id) == TimerStatus.RUNNING
    def is_paused(self, task_id):
        return self.get_status(task_id) == TimerStatus.PAUSED
    def is_on_break(self, task_id):
        return self.get_status(task_id) == TimerStatus.ON_BREAK

    def get_running_timer_id(self):
        with self._lock:
            return self._running_id
    def has_running_timer(self):
        return self.get_running_timer_id() is not None

    # Copies only, callers never get a live entry.
    def get_timer(self, task_id):
        with self._lock:
            return replace(self._ensure(task_id))
    def get_all_timers(self):
        with self._lock:
            return [replace(state) for state in self._timers.values()]

    def summary(self):
        with self._lock:
            return elapsed.summarize(self._timers.values(), self.clock.sample(), self._running_id)

    def snapshot(self):
        with self._lock:
            return build_snapshot(self._timers.values(), self.clock.sample())

    #endregion === Queries ===

    #region === Lifecycle ===

    # Explicit removal hook, for deleted rows and submitted timesheets. Returns whether anything was removed.
    def remove(self, task_id):
        with self._lock:
            state = self._timers.pop(task_id, None)
            if state is None:
                return False
            if self._running_id == task_id:
                self._running_id = None
            log.debug(f"Removed timer '{task_id}'")
        self.bus.notify()
        return True

    def clear(self):
        with self._lock:
            count = len(self._timers)
            self._timers.clear()
            self._running_id = None
            log.debug(f"Cleared {count} timers")
        self.bus.notify()

    # Loads a snapshot's timers back in as paused tasks, replacing any entries with the same id.
    def restore(self, snapshot):
        states = states_from_snapshot(snapshot)
        with self._lock:
            for state in states:
                if self._running_id == state.task_id:
                    self._running_id = None
                self._timers[state.task_id] = state
            log.info(f"Restored {len(states)} timers from snapshot")
        self.bus.notify()
        return len(states)

    # Folds every open span into its accumulator and reopens it at the same instant. Readings don't change, but
    # the closed accumulators now hold everything up to now.
    def flush(self):
        with self._lock:
            now = self.clock.sample()
            open_states = [s for s in self._timers.values() if s.open_span_start_ms is not None]
            for state in open_states:
                state.freeze(now)
        if open_states:
            log.debug(f"Flushed {len(open_states)} open spans at mono {now}")
            self.bus.notify()

    # Exit hook: pauses the running task, ends every break, tells subscribers one last time, then drops them all
    # and stops the ticker. Safe to call more than once.
    def shutdown(self):
        with self._lock:
            now = self.clock.sample()
            stopped = [s.task_id for s in self._timers.values() if s.status != TimerStatus.PAUSED]
            for task_id in stopped:
                self._pause(self._timers[task_id], now)
        if stopped:
            log.info(f"Shutdown stopped timers: {', '.join(stopped)}")
        self.bus.notify()
        self.bus.close()

    def subscribe(self, callback):
        return self.bus.subscribe(callback)

    #endregion === Lifecycle ===
