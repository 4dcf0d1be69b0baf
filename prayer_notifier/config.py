"""User settings: defaults, ~/.prayertime/config.json and command line overrides."""

import json
import logging
import os

import pytz

from prayer_notifier.calculation import (
    DEFAULT_HIGH_LATITUDE_RULE,
    DEFAULT_MADHAB,
    DEFAULT_METHOD,
    HIGH_LATITUDE_RULES,
    MADHABS,
    METHODS,
    PRAYER_NAMES,
)
from prayer_notifier.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayertime")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")

LANGUAGES = ("id", "en")

DEFAULT_SETTINGS = {
    "method": DEFAULT_METHOD,
    "madhab": DEFAULT_MADHAB,
    "high_latitude_rule": DEFAULT_HIGH_LATITUDE_RULE,
    "timezone": None,       # None = system local time
    "reminders": [],        # minutes before each prayer
    "language": "id",
    "offsets": {},          # {prayer_name: minutes}
}


def load_config_file(path: str = None) -> dict:
    """Read the optional JSON config file; a missing file is an empty config."""
    path = path or CONFIG_FILE
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    unknown = set(data) - set(DEFAULT_SETTINGS)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(sorted(unknown)))
    return {k: v for k, v in data.items() if k in DEFAULT_SETTINGS}


def get_timezone(name):
    """Return the pytz timezone for an IANA name, or None for the system zone."""
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ConfigError(f"Unknown timezone '{name}'") from None


def _choice(settings: dict, key: str, choices, what: str) -> None:
    value = settings[key]
    if not isinstance(value, str) or value not in choices:
        raise ConfigError(f"Unknown {what} {value!r}. Choose one of: {', '.join(choices)}")


def _whole_minutes(value, what: str) -> int:
    # integers or numeric strings; booleans and floats are rejected
    if isinstance(value, (bool, float)) or not isinstance(value, (int, str)):
        raise ConfigError(f"{what} must be a whole number of minutes, got {value!r}")
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{what} must be a whole number of minutes, got {value!r}") from None


def validate_settings(settings: dict) -> dict:
    """Check every setting and normalise reminders/offsets; raises ConfigError."""
    _choice(settings, "method", METHODS, "calculation method")
    _choice(settings, "madhab", MADHABS, "madhab")
    _choice(settings, "high_latitude_rule", HIGH_LATITUDE_RULES, "high latitude rule")
    _choice(settings, "language", LANGUAGES, "language")
    if settings["timezone"] is not None and not isinstance(settings["timezone"], str):
        raise ConfigError(f"Timezone must be an IANA name, got {settings['timezone']!r}")
    get_timezone(settings["timezone"])

    if not isinstance(settings["reminders"] or [], list):
        raise ConfigError(f"Reminders must be a list of minutes, got {settings['reminders']!r}")
    reminders = []
    for value in settings["reminders"] or []:
        minutes = _whole_minutes(value, "Reminder")
        if minutes <= 0:
            raise ConfigError(f"Reminder must be a positive number of minutes, got {minutes}")
        reminders.append(minutes)
    settings["reminders"] = sorted(set(reminders), reverse=True)

    if not isinstance(settings["offsets"] or {}, dict):
        raise ConfigError(f"Offsets must map prayer names to minutes, got {settings['offsets']!r}")
    offsets = {}
    for name, value in (settings["offsets"] or {}).items():
        if name not in PRAYER_NAMES:
            raise ConfigError(f"Unknown prayer '{name}' in offsets")
        offsets[name] = _whole_minutes(value, f"Offset for {name}")
    settings["offsets"] = offsets
    return settings


def load_settings(overrides: dict = None, path: str = None) -> dict:
    """
    Merge DEFAULT_SETTINGS, the config file and command line overrides.

    Overrides whose value is None are ignored so unset CLI flags do not
    mask the config file.
    """
    settings = dict(DEFAULT_SETTINGS)
    settings.update(load_config_file(path))
    for key, value in (overrides or {}).items():
        if value is not None:
            settings[key] = value
    return validate_settings(settings)
