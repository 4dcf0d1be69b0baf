"""Offline prayer time calculation on top of adhanpy."""

import datetime
import logging
import math

from adhanpy.PrayerTimes import PrayerTimes
from adhanpy.astronomy.SolarTime import SolarTime
from adhanpy.calculation.CalculationMethod import CalculationMethod
from adhanpy.calculation.CalculationParameters import CalculationParameters
from adhanpy.calculation.HighLatitudeRule import HighLatitudeRule
from adhanpy.calculation.Madhab import Madhab
from adhanpy.calculation.PrayerAdjustments import PrayerAdjustments
from adhanpy.data.Coordinates import Coordinates
from adhanpy.util.CalendarUtil import rounded_minute
from adhanpy.util.DateComponents import DateComponents
from adhanpy.util.TimeComponents import TimeComponents

from prayer_notifier.errors import CalculationError, ConfigError

logger = logging.getLogger(__name__)

PRAYER_NAMES = ["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"]
# Sunrise ends the Fajr window; it is shown but never announced
NOTIFY_PRAYERS = ["Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"]

# Methods adhanpy ships carry their enum member. The others are built from
# Fajr/Isha angles, an optional Maghrib angle (degrees below the horizon) and
# fixed minute adjustments.
METHODS = {
    "singapore": {
        "name": "Majlis Ugama Islam Singapura",
        "method": CalculationMethod.SINGAPORE,
    },
    "mwl": {
        "name": "Muslim World League",
        "method": CalculationMethod.MUSLIM_WORLD_LEAGUE,
    },
    "egyptian": {
        "name": "Egyptian General Authority of Survey",
        "method": CalculationMethod.EGYPTIAN,
    },
    "karachi": {
        "name": "University of Islamic Sciences, Karachi",
        "method": CalculationMethod.KARACHI,
    },
    "isna": {
        "name": "Islamic Society of North America",
        "method": CalculationMethod.NORTH_AMERICA,
    },
    "umm_al_qura": {
        "name": "Umm al-Qura University, Makkah",
        "method": CalculationMethod.UMM_AL_QURA,
    },
    "dubai": {
        "name": "Dubai",
        "method": CalculationMethod.DUBAI,
    },
    "kuwait": {
        "name": "Kuwait",
        "method": CalculationMethod.KUWAIT,
    },
    "qatar": {
        "name": "Qatar",
        "method": CalculationMethod.QATAR,
    },
    "moonsighting": {
        "name": "Moonsighting Committee Worldwide",
        "method": CalculationMethod.MOON_SIGHTING_COMMITTEE,
    },
    "tehran": {
        "name": "Institute of Geophysics, University of Tehran",
        "fajr_angle": 17.7, "isha_angle": 14.0, "maghrib_angle": 4.5,
    },
    "turkey": {
        "name": "Diyanet Isleri Baskanligi, Turkey",
        "fajr_angle": 18.0, "isha_angle": 17.0,
        "adjustments": {"sunrise": -7, "dhuhr": 5, "asr": 4, "maghrib": 7},
    },
}

DEFAULT_METHOD = "singapore"

MADHABS = {"shafi": Madhab.SHAFI, "hanafi": Madhab.HANAFI}
DEFAULT_MADHAB = "shafi"

HIGH_LATITUDE_RULES = {
    "middle_of_night": HighLatitudeRule.MIDDLE_OF_THE_NIGHT,
    "seventh_of_night": HighLatitudeRule.SEVENTH_OF_THE_NIGHT,
    "twilight_angle": HighLatitudeRule.TWILIGHT_ANGLE,
}
DEFAULT_HIGH_LATITUDE_RULE = "middle_of_night"


def _lookup(table: dict, key: str, what: str):
    try:
        return table[key]
    except KeyError:
        raise ConfigError(
            f"Unknown {what} '{key}'. Choose one of: {', '.join(table)}"
        ) from None


def get_method(name: str) -> dict:
    """Return the description of a calculation method by its key."""
    return _lookup(METHODS, name, "calculation method")


def get_madhab(name: str) -> Madhab:
    return _lookup(MADHABS, name, "madhab")


def get_high_latitude_rule(name: str) -> HighLatitudeRule:
    return _lookup(HIGH_LATITUDE_RULES, name, "high latitude rule")


def rise_set_angle(elevation: float = 0) -> float:
    """Depression of the sun at sunrise/sunset, corrected for observer elevation."""
    return 50.0 / 60.0 + 0.0347 * math.sqrt(max(elevation or 0, 0))


def build_parameters(settings: dict = None) -> CalculationParameters:
    """
    Translate settings (method, madhab, high_latitude_rule, offsets) into
    adhanpy calculation parameters. Raises ConfigError for unknown values.
    """
    settings = settings or {}
    method = get_method(settings.get("method") or DEFAULT_METHOD)

    if "method" in method:
        params = CalculationParameters(method=method["method"])
    else:
        params = CalculationParameters(
            fajr_angle=method["fajr_angle"],
            isha_angle=method["isha_angle"],
            method_adjustments=PrayerAdjustments(**method.get("adjustments", {})),
        )

    params.madhab = get_madhab(settings.get("madhab") or DEFAULT_MADHAB)
    params.high_latitude_rule = get_high_latitude_rule(
        settings.get("high_latitude_rule") or DEFAULT_HIGH_LATITUDE_RULE
    )
    offsets = settings.get("offsets") or {}
    params.adjustments = PrayerAdjustments(
        **{name.lower(): minutes for name, minutes in offsets.items()}
    )
    return params


def _sun_depression_time(day: datetime.date, coordinates: Coordinates, depression: float, after_transit: bool):
    """UTC instant the sun sits `depression` degrees below the horizon, or None if it never does."""
    components = DateComponents(day.year, day.month, day.day)
    solar_time = SolarTime(components, coordinates)
    hours = TimeComponents.from_float(solar_time.hour_angle(-depression, after_transit))
    if hours is None:
        return None
    return hours.date_components(components)


def _adjusted(params: CalculationParameters, prayer: str, when: datetime.datetime) -> datetime.datetime:
    minutes = getattr(params.adjustments, prayer) + getattr(params.method_adjustments, prayer)
    return rounded_minute(when + datetime.timedelta(minutes=minutes))


def _horizon_corrections(day, coordinates, elevation, method, params) -> dict:
    """
    Sunrise/Maghrib (and an interval based Isha) for an elevated observer,
    and Maghrib for methods that define it by an angle. Returns UTC times
    keyed by lower case prayer name.
    """
    corrected = {}
    if elevation > 0:
        depression = rise_set_angle(elevation)
        sunrise = _sun_depression_time(day, coordinates, depression, after_transit=False)
        sunset = _sun_depression_time(day, coordinates, depression, after_transit=True)
        if sunrise is not None:
            corrected["sunrise"] = _adjusted(params, "sunrise", sunrise)
        if sunset is not None:
            corrected["maghrib"] = _adjusted(params, "maghrib", sunset)
            if params.isha_interval:
                isha = sunset + datetime.timedelta(minutes=params.isha_interval)
                corrected["isha"] = _adjusted(params, "isha", isha)

    if "maghrib_angle" in method:
        # keeps sunset when the sun never gets that low
        maghrib = _sun_depression_time(day, coordinates, method["maghrib_angle"], after_transit=True)
        if maghrib is not None:
            corrected["maghrib"] = _adjusted(params, "maghrib", maghrib)
    return corrected


def compute_prayer_times(day: datetime.date, location: dict, settings: dict = None, tz=None) -> dict:
    """
    Compute the prayer times for a date and location, entirely offline.

    location: dict with lat, lon and optionally elevation (metres).
    settings: dict with method, madhab, high_latitude_rule and offsets
              (minutes per prayer name); missing keys use the defaults.
    tz: a pytz timezone; None converts to the system local zone.

    Returns {prayer_name: aware datetime} for every name in PRAYER_NAMES.
    Raises CalculationError when a time cannot be determined and
    ConfigError for unknown settings.
    """
    settings = settings or {}
    method = get_method(settings.get("method") or DEFAULT_METHOD)
    params = build_parameters(settings)

    lat = float(location["lat"])
    lon = float(location["lon"])
    elevation = float(location.get("elevation") or 0)

    try:
        prayer_times = PrayerTimes(
            (lat, lon),
            datetime.datetime(day.year, day.month, day.day),
            calculation_parameters=params,
            time_zone=tz,
        )
    except RuntimeError:
        raise CalculationError(
            f"The sun does not rise or set at latitude {lat:.4f} on {day}"
        ) from None

    corrected = _horizon_corrections(day, Coordinates(lat, lon), elevation, method, params)

    times = {}
    for name in PRAYER_NAMES:
        key = name.lower()
        dt = corrected.get(key) or getattr(prayer_times, key)
        times[name] = dt.astimezone(tz) if tz is not None else dt.astimezone()

    logger.debug(
        "Computed prayer times for %s at (%.4f, %.4f): %s",
        day, lat, lon, format_times(times),
    )
    return times


def format_times(times: dict) -> dict:
    """Format {name: datetime} as {name: 'HH:MM'} in each datetime's own zone."""
    return {name: dt.strftime("%H:%M") for name, dt in times.items()}
