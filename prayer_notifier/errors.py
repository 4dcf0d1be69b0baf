"""Exceptions raised by the prayer time notifier."""


class PrayerTimeError(ValueError):
    """Base class for all notifier errors."""


class LocationError(PrayerTimeError):
    """Unknown city, malformed coordinate or no location given."""


class CalculationError(PrayerTimeError):
    """A prayer time cannot be computed for the date and location."""


class ConfigError(PrayerTimeError):
    """Invalid setting in the config file or on the command line."""
