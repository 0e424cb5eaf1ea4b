import atexit
import time
from tt.common.logger import configure_logging, log
from tt.core.clock import ClockSampler
from tt.core.config import load_settings, validate_settings
from tt.core.notify import NotificationBus, Ticker
from tt.core.store import TimerStore
from tt.core.timer_state import TimerStatus


# Registers store.shutdown() to run when the interpreter exits, so nothing is left running or on break.
def install_exit_flush(store):
    atexit.register(store.shutdown)
    log.debug("Registered timer shutdown with atexit")
    return store.shutdown

# Builds a fully wired engine and hands back its store, which is the handle every consumer should share. Ticks are
# delivered through Qt's event loop, so the host needs a running QCoreApplication (or QApplication) to see them.
def create_engine(settings=None, source=time.monotonic):
    if settings is None:
        settings = load_settings()
    else:
        given = settings
        settings, defaulted_values = validate_settings(given)
        # Left-out keys just take their defaults; only bad values that were given get warned about
        invalid = sorted(defaulted_values & set(given))
        if invalid:
            log.warning(f"Ignoring invalid engine settings, defaulted instead: {', '.join(invalid)}")
    configure_logging(settings)

    clock = ClockSampler(source)
    ticker = Ticker(clock, interval_ms=settings["tick_interval_ms"])
    bus = NotificationBus(ticker)
    store = TimerStore(clock, bus, default_break_target=TimerStatus(settings["default_break_target"]))

    if settings.get("flush_on_exit", True):
        install_exit_flush(store)
    log.info(f"Built timer engine with a {ticker.interval_ms} ms tick")
    return store
