"""Command line entry point for the prayer time notifier."""

import argparse
import logging
import sys

from prayer_notifier import __version__
from prayer_notifier.calculation import HIGH_LATITUDE_RULES, MADHABS, METHODS
from prayer_notifier.config import LANGUAGES, get_timezone, load_settings
from prayer_notifier.daemon import PrayerDaemon, fixed_clock
from prayer_notifier.errors import PrayerTimeError
from prayer_notifier.location import (
    clear_manual_location,
    resolve_location,
    save_manual_location,
    search_cities,
)

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with status 1 like every other validation failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog="prayertime-notifier",
        description="Compute daily prayer times offline, print them for a desktop "
                    "widget and send a notification at each prayer.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    where = parser.add_mutually_exclusive_group()
    where.add_argument("--city", help="City name from the bundled database, optionally 'Name,CC'")
    where.add_argument("--coordinate", help="Coordinates as 'lat,lon'")
    where.add_argument("--detect", action="store_true", help="Detect location from the IP address (network)")

    parser.add_argument("--elevation", type=float, help="Observer elevation in metres")
    parser.add_argument("--timezone", help="IANA timezone, e.g. Asia/Jakarta (default: system)")
    parser.add_argument("--method", choices=sorted(METHODS), help="Calculation method (default: singapore)")
    parser.add_argument("--madhab", choices=sorted(MADHABS), help="Asr shadow rule (default: shafi)")
    parser.add_argument("--high-latitude", choices=list(HIGH_LATITUDE_RULES), dest="high_latitude_rule",
                        help="Fallback when twilight angles are not reached")
    parser.add_argument("--remind", type=int, nargs="+", metavar="MIN",
                        help="Also notify this many minutes before each prayer")
    parser.add_argument("--lang", choices=LANGUAGES, dest="language", help="Notification language")

    parser.add_argument("--save-location", action="store_true", help="Remember the resolved location")
    parser.add_argument("--clear-location", action="store_true", help="Forget the saved location and exit")
    parser.add_argument("--list-cities", metavar="PREFIX", help="List known cities starting with PREFIX and exit")
    parser.add_argument("--print", action="store_true", dest="print_only",
                        help="Print today's times once and exit without notifying")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")

    parser.add_argument("--test-at", help=argparse.SUPPRESS)
    return parser


def setup_logging(verbose: bool = False) -> None:
    # stdout carries the widget status, so logs go to stderr
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.clear_location:
            clear_manual_location()
            return 0

        if args.list_cities is not None:
            for city in search_cities(args.list_cities, limit=20):
                print(f"{city['name']},{city['country']}\t{city['lat']:.4f},{city['lon']:.4f}")
            return 0

        settings = load_settings({
            "method": args.method,
            "madhab": args.madhab,
            "high_latitude_rule": args.high_latitude_rule,
            "timezone": args.timezone,
            "reminders": args.remind,
            "language": args.language,
        })

        location = resolve_location(args.city, args.coordinate, args.detect)
        if args.elevation is not None:
            if args.elevation < 0:
                raise PrayerTimeError("Elevation cannot be negative")
            location["elevation"] = args.elevation
        if args.save_location:
            save_manual_location(location)

        tz = get_timezone(settings["timezone"] or location.get("timezone"))
        clock = None
        if args.test_at:
            try:
                clock = fixed_clock(args.test_at, tz)
            except ValueError:
                raise PrayerTimeError(f"Invalid --test-at time '{args.test_at}'. Use HH:MM") from None

        daemon = PrayerDaemon(location, settings, clock=clock, test_mode=bool(args.test_at))
        if args.print_only:
            now = daemon.clock()
            daemon.publish(daemon.compute_today(now), now)
            return 0
        daemon.run(once=bool(args.test_at))
    except PrayerTimeError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
