"""The background loop: compute, publish status, sleep, notify, repeat."""

import datetime
import json
import logging
import sys
import time

from prayer_notifier.calculation import compute_prayer_times
from prayer_notifier.config import get_timezone
from prayer_notifier.notifier import notify_prayer_time, notify_reminder
from prayer_notifier.schedule import (
    build_status,
    localize,
    next_day_start,
    now_in,
    seconds_until,
    upcoming_events,
)

logger = logging.getLogger(__name__)

# Pause after a notification so the same instant is never handled twice
POST_NOTIFY_PAUSE = 1


class PrayerDaemon:
    """
    Single-threaded prayer time notifier.

    Each iteration recomputes today's times, writes one JSON status line to
    `out`, sleeps until the next event and fires its notification. `clock`
    returns the current aware datetime; `sleep` takes seconds. Both are
    replaceable for tests and for the fixed-time test mode.
    """

    def __init__(self, location: dict, settings: dict, out=None, clock=None, sleep=time.sleep, test_mode=False):
        self.location = location
        self.settings = settings
        self.out = out if out is not None else sys.stdout
        self.tz = get_timezone(settings.get("timezone") or location.get("timezone"))
        self.clock = clock or (lambda: now_in(self.tz))
        self.sleep = sleep
        self.test_mode = test_mode

    def _log_test(self, msg, *args):
        if self.test_mode:
            logger.info("[TEST MODE] " + msg, *args)

    def compute_today(self, now: datetime.datetime) -> dict:
        return compute_prayer_times(now.date(), self.location, self.settings, self.tz)

    def publish(self, times: dict, now: datetime.datetime) -> dict:
        """Write the status line for the widget and flush it."""
        status = build_status(times, now, self.location)
        self.out.write(json.dumps(status, ensure_ascii=False) + "\n")
        self.out.flush()
        return status

    def fire(self, kind: str, prayer: str, minutes: int) -> None:
        language = self.settings.get("language", "id")
        if kind == "reminder":
            notify_reminder(prayer, minutes, language)
        else:
            notify_prayer_time(prayer, language)

    def run_once(self) -> dict:
        """One iteration of the loop. Returns the published status."""
        now = self.clock()
        times = self.compute_today(now)
        status = self.publish(times, now)

        events = upcoming_events(times, now, self.settings.get("reminders") or ())
        if events:
            when, kind, prayer, minutes = events[0]
            delay = max((when - now).total_seconds(), 0)
            self._log_test("Sleeping for %.0fs until %s (%s).", delay, prayer, kind)
            logger.debug("Next event: %s %s at %s (in %ss)", kind, prayer, when.isoformat(), seconds_until(when, now))
            self.sleep(delay)
            self.fire(kind, prayer, minutes)
            self.sleep(POST_NOTIFY_PAUSE)
        else:
            wake = next_day_start(now, self.tz)
            delay = max((wake - now).total_seconds(), 0)
            self._log_test("No more prayers today. Sleeping for %.0fs.", delay)
            logger.debug("No more prayers today, waking at %s", wake.isoformat())
            self.sleep(delay)
        return status

    def run(self, once: bool = False) -> None:
        """Loop forever, or for a single iteration when `once` is set."""
        logger.info(
            "Starting prayer notifier for %s (%.4f, %.4f), method %s",
            self.location.get("name"), self.location["lat"], self.location["lon"],
            self.settings.get("method"),
        )
        while True:
            self.run_once()
            if once:
                break


def fixed_clock(test_at: str, tz=None):
    """
    Build a clock frozen at today's HH:MM local time for --test-at.
    Raises ValueError on a malformed time.
    """
    at = datetime.datetime.strptime(test_at, "%H:%M").time()
    today = now_in(tz).date()
    naive = datetime.datetime.combine(today, at)
    frozen = localize(naive, tz)
    return lambda: frozen
