"""Location lookup: bundled city dataset, coordinates, saved location and IP geolocation."""

import functools
import json
import logging
import os

import requests

from prayer_notifier.errors import LocationError

logger = logging.getLogger(__name__)

CITIES_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "cities.json")

IPAPI_URL = "http://ip-api.com/json/"

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayertime")
CONFIG_FILE = os.path.join(CONFIG_DIR, "location.json")

REQUIRED_KEYS = ("name", "lat", "lon")


def _parse_degrees(value, field: str, city: str) -> float:
    # The dataset stores coordinates either as JSON numbers or numeric strings
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise LocationError(f"City '{city}': expected string or number for {field}, got {value!r}")
    try:
        return float(value)
    except ValueError:
        raise LocationError(f"City '{city}': invalid {field} {value!r}") from None


@functools.lru_cache(maxsize=None)
def load_cities(path: str = None) -> tuple:
    """
    Load the city dataset once per process.

    Returns a tuple of location dicts: name, country, lat, lon.
    """
    path = path or CITIES_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise LocationError(f"Cannot read city database {path}: {e}") from e

    cities = []
    for entry in raw:
        name = entry.get("name")
        if not name:
            raise LocationError(f"City entry without a name in {path}: {entry!r}")
        cities.append({
            "name": name,
            "country": entry.get("country", ""),
            "lat": _parse_degrees(entry.get("lat"), "lat", name),
            "lon": _parse_degrees(entry.get("lon"), "lon", name),
        })
    logger.debug("Loaded %d cities from %s", len(cities), path)
    return tuple(cities)


def get_coordinates_from_city(city_name: str, path: str = None) -> dict:
    """
    Find a city by name, ignoring case. The first match wins.

    "Name,CC" restricts the match to an ISO country code, e.g. "Tripoli,LY".
    """
    name, _, country = city_name.partition(",")
    name = name.strip().lower()
    country = country.strip().lower()
    for city in load_cities(path):
        if city["name"].lower() != name:
            continue
        if country and city["country"].lower() != country:
            continue
        location = dict(city)
        location["elevation"] = 0
        location["timezone"] = None
        return location
    raise LocationError(f"City '{city_name}' not found in the local database.")


def search_cities(prefix: str, limit: int = 10, path: str = None) -> list:
    """Return up to `limit` cities whose name starts with `prefix`, ignoring case."""
    prefix = prefix.strip().lower()
    matches = [c for c in load_cities(path) if c["name"].lower().startswith(prefix)]
    return matches[:limit]


def validate_coordinates(lat: float, lon: float) -> None:
    if not -90 <= lat <= 90:
        raise LocationError(f"Latitude {lat} out of range (-90..90)")
    if not -180 <= lon <= 180:
        raise LocationError(f"Longitude {lon} out of range (-180..180)")


def parse_coordinates(coordinate_str: str) -> dict:
    """Parse 'lat,lon' into a location dict."""
    parts = coordinate_str.split(",")
    if len(parts) != 2:
        raise LocationError("Invalid coordinate format. Use `lat,lon`")
    try:
        lat = float(parts[0].strip())
        lon = float(parts[1].strip())
    except ValueError:
        raise LocationError("Invalid coordinate format. Use `lat,lon`") from None
    validate_coordinates(lat, lon)
    return {
        "name": f"{lat:.4f},{lon:.4f}",
        "country": "",
        "lat": lat,
        "lon": lon,
        "elevation": 0,
        "timezone": None,
    }


def detect_location(timeout: int = 5) -> dict:
    """
    Detect the current location via IP geolocation.

    This is the only network call of the notifier and is used only on request.
    Raises LocationError when the lookup fails.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,countryCode,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise LocationError(f"IP geolocation failed: {e}") from e

    if data.get("status") != "success":
        raise LocationError(f"IP geolocation failed: {data.get('message', 'unknown error')}")
    try:
        lat = float(data["lat"])
        lon = float(data["lon"])
    except (KeyError, TypeError, ValueError):
        raise LocationError("IP geolocation returned no coordinates") from None
    validate_coordinates(lat, lon)
    location = {
        "name": data.get("city") or f"{lat:.4f},{lon:.4f}",
        "country": data.get("countryCode", ""),
        "lat": lat,
        "lon": lon,
        "elevation": 0,
        "timezone": data.get("timezone"),
    }
    logger.info("Detected location %s (%.4f, %.4f)", location["name"], lat, lon)
    return location


def save_manual_location(location: dict) -> None:
    """Save a location to the config file so later runs can omit --city."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(location, f, indent=2)
    logger.info("Saved location %s to %s", location.get("name"), CONFIG_FILE)


def load_manual_location():
    """Load a previously saved location, or return None if absent or invalid."""
    if not os.path.isfile(CONFIG_FILE):
        return None
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable saved location %s: %s", CONFIG_FILE, e)
        return None
    if not isinstance(data, dict) or not all(k in data for k in REQUIRED_KEYS):
        logger.warning("Ignoring incomplete saved location %s", CONFIG_FILE)
        return None
    try:
        data["lat"] = float(data["lat"])
        data["lon"] = float(data["lon"])
        data["elevation"] = float(data.get("elevation") or 0)
        validate_coordinates(data["lat"], data["lon"])
    except (TypeError, ValueError) as e:
        logger.warning("Ignoring saved location with bad coordinates: %s", e)
        return None
    data.setdefault("country", "")
    data.setdefault("timezone", None)
    return data


def clear_manual_location() -> None:
    """Remove the saved location."""
    if os.path.isfile(CONFIG_FILE):
        os.remove(CONFIG_FILE)
        logger.info("Removed saved location %s", CONFIG_FILE)


def resolve_location(city: str = None, coordinate: str = None, detect: bool = False) -> dict:
    """
    Pick the location from the first available source:
    --city, --coordinate, --detect, then the saved location.
    """
    if city:
        return get_coordinates_from_city(city)
    if coordinate:
        return parse_coordinates(coordinate)
    if detect:
        return detect_location()
    saved = load_manual_location()
    if saved is not None:
        logger.debug("Using saved location %s", saved["name"])
        return saved
    raise LocationError("Please provide either --city or --coordinate")
