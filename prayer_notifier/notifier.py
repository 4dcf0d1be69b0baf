"""Desktop notifications for prayer times."""

import logging

from plyer import notification as plyer_notification

logger = logging.getLogger(__name__)

APP_NAME = "Prayer Time"

MESSAGES = {
    "id": {
        "prayer_title": "Waktu Sholat {prayer}",
        "prayer_body": "Saatnya menunaikan sholat {prayer}",
        "reminder_title": "Sholat {prayer} — {minutes} menit lagi",
        "reminder_body": "Sholat {prayer} dimulai dalam {minutes} menit.",
    },
    "en": {
        "prayer_title": "{prayer} — Time to Pray!",
        "prayer_body": "It is now time for {prayer} prayer.",
        "reminder_title": "{prayer} — {minutes} minutes",
        "reminder_body": "{prayer} prayer starts in {minutes} minutes. Prepare for prayer.",
    },
}


def _send_plyer(title: str, message: str, timeout: int = 10) -> bool:
    """Send a desktop notification via plyer. Returns False if delivery failed."""
    try:
        plyer_notification.notify(
            app_name=APP_NAME,
            title=title,
            message=message,
            timeout=timeout,
        )
    except Exception as e:  # plyer backends raise anything from dbus to OSError
        logger.warning("Desktop notification failed: %s", e)
        return False
    logger.info("Notification sent: %s", title)
    return True


def _messages(language: str) -> dict:
    return MESSAGES.get(language, MESSAGES["id"])


def notify_prayer_time(prayer: str, language: str = "id") -> bool:
    """Announce that prayer time has arrived."""
    texts = _messages(language)
    title = texts["prayer_title"].format(prayer=prayer)
    message = texts["prayer_body"].format(prayer=prayer)
    return _send_plyer(title, message, timeout=30)


def notify_reminder(prayer: str, minutes: int, language: str = "id") -> bool:
    """Warn that a prayer starts in `minutes` minutes."""
    texts = _messages(language)
    title = texts["reminder_title"].format(prayer=prayer, minutes=minutes)
    message = texts["reminder_body"].format(prayer=prayer, minutes=minutes)
    return _send_plyer(title, message, timeout=15)
