"""WMO weather interpretation codes to display condition and icon."""

UNKNOWN_CONDITION = "Unknown"

# code -> (condition, day icon, night icon)
_WEATHER_CODES: dict[int, tuple[str, str, str]] = {
    0: ("Clear sky", "01d", "01n"),
    1: ("Mainly clear", "02d", "02n"),
    2: ("Partly cloudy", "03d", "03n"),
    3: ("Overcast", "04d", "04d"),
    45: ("Fog", "50d", "50d"),
    48: ("Fog", "50d", "50d"),
    51: ("Drizzle", "09d", "09d"),
    53: ("Drizzle", "09d", "09d"),
    55: ("Drizzle", "09d", "09d"),
    61: ("Rain", "10d", "10d"),
    63: ("Rain", "10d", "10d"),
    65: ("Rain", "10d", "10d"),
    71: ("Snow", "13d", "13d"),
    73: ("Snow", "13d", "13d"),
    75: ("Snow", "13d", "13d"),
    80: ("Rain showers", "09d", "09d"),
    81: ("Rain showers", "09d", "09d"),
    82: ("Rain showers", "09d", "09d"),
    85: ("Snow showers", "13d", "13d"),
    86: ("Snow showers", "13d", "13d"),
    95: ("Thunderstorm", "11d", "11d"),
    96: ("Thunderstorm with hail", "11d", "11d"),
    99: ("Thunderstorm with hail", "11d", "11d"),
}

KNOWN_WEATHER_CODES = frozenset(_WEATHER_CODES)


def classify_weather_code(code: int, is_day: bool) -> tuple[str, str]:
    """Map a WMO weather code and day/night flag to (condition, icon).

    Only codes 0-2 have distinct night icons; everything else, including
    Overcast (3), uses the day icon. Unmapped codes give "Unknown" with the
    clear-sky icon for the time of day.

    Args:
        code: WMO weather interpretation code
        is_day: True during daylight

    Returns:
        Tuple of (condition, icon), icon formatted like "01d" / "01n"
    """
    entry = _WEATHER_CODES.get(code)
    if entry is None:
        return UNKNOWN_CONDITION, "01d" if is_day else "01n"

    condition, day_icon, night_icon = entry
    return condition, day_icon if is_day else night_icon
