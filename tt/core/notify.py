from PySide6.QtCore import QObject, QTimer, Signal
from tt.common.logger import log


# One shared interval timer. Each tick refreshes the clock sample, then emits `ticked`. It only runs between
# acquire() and release(), so nothing keeps firing once nobody is watching.
class Ticker(QObject):
    ticked = Signal()

    def __init__(self, clock, interval_ms=1000, parent=None):
        super().__init__(parent)
        self.clock = clock
        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self.tick)

    @property
    def interval_ms(self):
        return self._timer.interval()

    @property
    def is_running(self):
        return self._timer.isActive()

    def acquire(self):
        if not self._timer.isActive():
            self._timer.start()
            log.debug(f"Ticker started at {self.interval_ms} ms")
    def release(self):
        if self._timer.isActive():
            self._timer.stop()
            log.debug("Ticker stopped")

    def tick(self):
        self.clock.sample()
        self.ticked.emit()


# Tells subscribers "timer state may have changed". Fired by store mutations and by every tick, so callbacks
# should just re-read whatever they display.
class NotificationBus(QObject):
    changed = Signal()

    def __init__(self, ticker, parent=None):
        super().__init__(parent)
        self.ticker = ticker
        self.ticker.ticked.connect(self.notify)
        self._slots = {}  # token -> connected wrapper
        self._next_token = 0

    @property
    def subscriber_count(self):
        return len(self._slots)

    # Connects callback and hands back a function that disconnects it again. Calling that twice is harmless.
    def subscribe(self, callback):
        def _guarded():
            try:
                callback()
            except Exception:
                # Logged and dropped, the remaining subscribers still run
                log.exception(f"Timer subscriber {callback!r} raised")

        token = self._next_token
        self._next_token += 1
        self._slots[token] = _guarded
        self.changed.connect(_guarded)
        self.ticker.acquire()

        def unsubscribe():
            self._unsubscribe(token)
        return unsubscribe

    def _unsubscribe(self, token):
        slot = self._slots.pop(token, None)
        if slot is None:
            return
        self.changed.disconnect(slot)
        if not self._slots:
            self.ticker.release()

    def notify(self):
        self.changed.emit()

    # Drops every subscriber and stops the ticker.
    def close(self):
        for token in list(self._slots):
            self._unsubscribe(token)
        self.ticker.release()
