import json
from tt.common.logger import log
from tt.common.setup import PATHS, ensure_directory
from tt.core.timer_state import TimerStatus, parse_break_target


#region === Defaults and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"

# Default values for every engine setting, along with the type each one has to be.
_SETTINGS_DEFAULTS = {
    "tick_interval_ms": 1000,
    "default_break_target": TimerStatus.PAUSED.value,
    "log_level": "INFO",
    "log_console": False,
    "log_persistent": False,
    "historical_debugs": 0,
    "flush_on_exit": True,
}

# Helper to return a truly fresh, default settings dict.
def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

# Checks one value against its default. bool is an int subclass, so types are compared exactly.
def _valid_setting(key, value):
    if key == "default_break_target":
        return parse_break_target(value) is not None
    default = _SETTINGS_DEFAULTS[key]
    if type(value) is not type(default):
        return False
    if key == "tick_interval_ms":
        return value > 0
    if key == "historical_debugs":
        return value >= 0
    return True

# Builds a full settings dict out of whatever was given, defaulting missing or invalid keys. Returns the settings
# along with the set of keys that had to be defaulted.
def validate_settings(given):
    settings = build_default_settings()
    defaulted_values = set()
    for key in _SETTINGS_DEFAULTS:
        if key not in given or not _valid_setting(key, given[key]):
            defaulted_values.add(key)
        else:
            settings[key] = given[key]
    # Stored the way the defaults spell it, whatever case it was given in
    settings["default_break_target"] = parse_break_target(settings["default_break_target"]).value
    return settings, defaulted_values

#endregion === Defaults and Paths ===

#region === Saving and Loading Settings ===

# Loads engine settings from SETTINGS_PATH (or the given path), filling in defaults for anything missing or invalid.
def load_settings(path=None):
    path = path or SETTINGS_PATH
    if not path.exists():
        log.info(f"No settings file found at '{path}', using default settings.")
        return build_default_settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise TypeError(f"Expected a JSON object, got {type(loaded).__name__}")
    # Fall back to fresh defaults in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning(f"Ran into an error while trying to load '{path}', falling back to default settings.",exc_info=True)
        return build_default_settings()

    settings, defaulted_values = validate_settings(loaded)
    if defaulted_values:
        log.warning(f"Loaded settings from '{path}', but with missing or invalid values that were defaulted: {', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded settings from '{path}'.")
    return settings

# Write the given settings to disk under SETTINGS_PATH (or the given path)
def save_settings(settings, path=None):
    path = path or SETTINGS_PATH
    ensure_directory(path.parent)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{path}'")
    return path

#endregion === Saving and Loading Settings ===
