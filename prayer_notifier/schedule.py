"""Next-prayer selection, sleep targets and the status line for the widget."""

import datetime
import logging

from hijri_converter import Gregorian

from prayer_notifier.calculation import NOTIFY_PRAYERS, PRAYER_NAMES

logger = logging.getLogger(__name__)

# Seconds past local midnight at which the next day's times are computed
DAY_ROLLOVER_SECONDS = 1


def get_next_prayer(times: dict, now: datetime.datetime) -> tuple:
    """
    Return (prayer_name, prayer_datetime) of the first prayer strictly after
    `now`. Sunrise is skipped. Returns (None, None) once Isha has passed.
    """
    for name in NOTIFY_PRAYERS:
        if times[name] > now:
            return name, times[name]
    return None, None


def upcoming_events(times: dict, now: datetime.datetime, reminders=()) -> list:
    """
    List today's future events as (when, kind, prayer_name, minutes) sorted by time.

    kind is "prayer" for the prayer itself (minutes 0) or "reminder" for an
    alert `minutes` before it. Events at or before `now` are dropped.
    """
    events = []
    for name in NOTIFY_PRAYERS:
        prayer_dt = times[name]
        if prayer_dt > now:
            events.append((prayer_dt, "prayer", name, 0))
        for minutes in reminders:
            remind_dt = prayer_dt - datetime.timedelta(minutes=minutes)
            if remind_dt > now:
                events.append((remind_dt, "reminder", name, minutes))
    # a reminder sorts before a prayer at the same instant
    events.sort(key=lambda e: (e[0], e[1] == "prayer"))
    return events


def seconds_until(target_dt: datetime.datetime, now: datetime.datetime = None) -> int:
    """Return seconds from now until target_dt (negative if past)."""
    if now is None:
        now = datetime.datetime.now(target_dt.tzinfo)
    delta = target_dt - now
    return int(delta.total_seconds())


def now_in(tz=None) -> datetime.datetime:
    """Current aware time in tz, or in the system zone when tz is None."""
    if tz is None:
        return datetime.datetime.now().astimezone()
    return datetime.datetime.now(tz)


def localize(naive: datetime.datetime, tz=None) -> datetime.datetime:
    """Attach tz (or the system zone) to a naive local datetime."""
    if tz is None:
        return naive.astimezone()
    return tz.localize(naive)


def next_day_start(now: datetime.datetime, tz=None) -> datetime.datetime:
    """Tomorrow 00:00:01 local time, when the next day's times get computed."""
    tomorrow = now.date() + datetime.timedelta(days=1)
    naive = datetime.datetime.combine(tomorrow, datetime.time(0, 0, DAY_ROLLOVER_SECONDS))
    return localize(naive, tz)


def hijri_date(day: datetime.date):
    """Hijri (Umm al-Qura) date as a dict, or None outside the supported range."""
    try:
        hijri = Gregorian(day.year, day.month, day.day).to_hijri()
    except OverflowError:
        logger.debug("No Hijri date available for %s", day)
        return None
    return {
        "day": hijri.day,
        "month": hijri.month,
        "month_name": hijri.month_name(),
        "year": hijri.year,
    }


def build_status(times: dict, now: datetime.datetime, location: dict = None) -> dict:
    """
    Build the status line read by the desktop widget.

    The five prayers are "HH:MM" keys; "next" names the next prayer and
    falls back to "Fajr" after Isha.
    """
    next_name, _ = get_next_prayer(times, now)
    status = {name: times[name].strftime("%H:%M") for name in PRAYER_NAMES}
    status["next"] = next_name or "Fajr"
    day = times["Dhuhr"].date()
    status["date"] = day.isoformat()
    status["hijri"] = hijri_date(day)
    if location:
        status["location"] = location.get("name")
    return status
