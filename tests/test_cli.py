"""Tests for the command line entry point."""

import io
import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from prayer_notifier.cli import main


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.mkdtemp()
        config_patch = patch(
            "prayer_notifier.config.CONFIG_FILE", os.path.join(self._tmpdir, "config.json"))
        config_patch.start()
        self.addCleanup(config_patch.stop)

    def tearDown(self):
        shutil.rmtree(self._tmpdir, ignore_errors=True)


class TestPrint(CliTestCase):
    @patch("sys.stdout", new_callable=io.StringIO)
    def test_prints_status_for_coordinate(self, stdout):
        code = main(["--coordinate", "0,0", "--timezone", "UTC", "--method", "mwl", "--print"])
        self.assertEqual(code, 0)
        status = json.loads(stdout.getvalue().strip())
        self.assertIn(status["next"], ("Fajr", "Dhuhr", "Asr", "Maghrib", "Isha"))

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_prints_status_for_city(self, stdout):
        code = main(["--city", "Makkah", "--timezone", "Asia/Riyadh", "--print"])
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout.getvalue())["location"], "Makkah")

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_list_cities(self, stdout):
        self.assertEqual(main(["--list-cities", "jak"]), 0)
        self.assertIn("Jakarta,ID", stdout.getvalue())


class TestErrors(CliTestCase):
    def test_unknown_city(self):
        with self.assertLogs("prayer_notifier.cli", level="ERROR") as logs:
            self.assertEqual(main(["--city", "Atlantis"]), 1)
        self.assertIn("not found in the local database", logs.output[0])

    def test_bad_coordinate(self):
        with self.assertLogs("prayer_notifier.cli", level="ERROR"):
            self.assertEqual(main(["--coordinate", "12"]), 1)

    @patch("prayer_notifier.location.load_manual_location", return_value=None)
    def test_no_location(self, _):
        with self.assertLogs("prayer_notifier.cli", level="ERROR") as logs:
            self.assertEqual(main([]), 1)
        self.assertIn("--city or --coordinate", logs.output[0])

    def test_bad_test_at(self):
        with self.assertLogs("prayer_notifier.cli", level="ERROR"):
            self.assertEqual(main(["--coordinate", "0,0", "--test-at", "noon"]), 1)

    def test_negative_elevation(self):
        with self.assertLogs("prayer_notifier.cli", level="ERROR"):
            self.assertEqual(main(["--coordinate", "0,0", "--elevation", "-5"]), 1)

    def test_city_and_coordinate_are_exclusive(self):
        with patch("sys.stderr", new_callable=io.StringIO) as stderr:
            with self.assertRaises(SystemExit) as cm:
                main(["--city", "Jakarta", "--coordinate", "0,0"])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("not allowed with argument", stderr.getvalue())

    def test_unknown_method_exits_with_status_one(self):
        with patch("sys.stderr", new_callable=io.StringIO) as stderr:
            with self.assertRaises(SystemExit) as cm:
                main(["--coordinate", "0,0", "--method", "guess"])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("invalid choice", stderr.getvalue())

    def test_non_numeric_reminder_exits_with_status_one(self):
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as cm:
                main(["--coordinate", "0,0", "--remind", "soon"])
        self.assertEqual(cm.exception.code, 1)


class TestDaemonMode(CliTestCase):
    @patch("prayer_notifier.cli.PrayerDaemon")
    def test_test_at_runs_once(self, mock_daemon_cls):
        daemon = MagicMock()
        mock_daemon_cls.return_value = daemon
        code = main(["--coordinate", "0,0", "--timezone", "UTC", "--test-at", "10:00"])
        self.assertEqual(code, 0)
        kwargs = mock_daemon_cls.call_args[1]
        self.assertTrue(kwargs["test_mode"])
        self.assertEqual(kwargs["clock"]().strftime("%H:%M"), "10:00")
        daemon.run.assert_called_once_with(once=True)

    @patch("prayer_notifier.cli.PrayerDaemon")
    def test_runs_forever_by_default(self, mock_daemon_cls):
        main(["--coordinate", "0,0", "--remind", "10", "5"])
        settings = mock_daemon_cls.call_args[0][1]
        self.assertEqual(settings["reminders"], [10, 5])
        mock_daemon_cls.return_value.run.assert_called_once_with(once=False)

    @patch("prayer_notifier.cli.save_manual_location")
    @patch("prayer_notifier.cli.PrayerDaemon")
    def test_save_location(self, _, mock_save):
        main(["--city", "Bogor", "--elevation", "250", "--save-location"])
        saved = mock_save.call_args[0][0]
        self.assertEqual(saved["name"], "Bogor")
        self.assertEqual(saved["elevation"], 250)


if __name__ == "__main__":
    unittest.main()
