import json
from rtt.common.logger import log
from rtt.common.setup import PATHS

#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"
PROGRAM_LIST_PATH = PATHS.current / "training_programs.json"
BACKUP_DIR = PATHS.backups

# Default values for every user setting.
_SETTINGS_DEFAULTS = {
    "backup_min_minutes": 5,
    "confirm_delete": True,
    "always_on_top": False,
    "last_directory": "",
}

# Settings that may also be null. A null backup_min_minutes turns backups off.
_NULLABLE_SETTINGS = {"backup_min_minutes"}

def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings.json, filling in defaults for anything missing or of the wrong type. A missing or broken file just
# means default settings.
def load_settings():
    if not SETTINGS_PATH.exists():
        log.info("No existing settings.json found in `current`, loading default settings.")
        return build_default_settings()
    try:
        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            settings = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError, RecursionError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.", exc_info=True)
        return build_default_settings()

    if not isinstance(settings, dict):
        log.warning(f"settings.json held a {type(settings).__name__} instead of an object, falling back to default settings.")
        return build_default_settings()

    defaulted_values = set()
    for key, default in _SETTINGS_DEFAULTS.items():
        if key in settings and settings[key] is None and key in _NULLABLE_SETTINGS:
            continue
        if key not in settings or type(settings[key]) is not type(default):
            defaulted_values.add(key)
            settings[key] = default

    if defaulted_values:
        log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
    return settings

# Write the given settings to disk under PATHS.current / settings.json
def save_settings(settings):
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===
