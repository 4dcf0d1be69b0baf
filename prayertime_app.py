#!/usr/bin/env python3
"""
Prayer Time Notifier
Background process for a desktop widget:
  - Computes the day's prayer times offline from the sun's position
  - Prints them with the next prayer as one JSON line per update
  - Sends a desktop notification at each prayer time (and optional reminders)

Usage:
  python prayertime_app.py --city Jakarta
  python prayertime_app.py --coordinate -6.2,106.8 --method mwl --remind 10 5
"""

import sys

from prayer_notifier.cli import main

if __name__ == "__main__":
    sys.exit(main())
