"""Unit conversion and rounding helpers for the public contract."""

KPH_PER_MPS = 3.6


def meters_per_second_to_kph(speed_mps: float) -> float:
    """Convert wind speed from m/s to km/h, rounded to 1 decimal."""
    return round(speed_mps * KPH_PER_MPS, 1)


def celsius_to_fahrenheit(celsius: float) -> float:
    """Convert a Celsius temperature to Fahrenheit, rounded to 1 decimal."""
    return round(celsius * 9.0 / 5.0 + 32, 1)


def round_temperature(celsius: float) -> float:
    return round(celsius, 1)


def round_coordinate(degrees: float) -> float:
    return round(degrees, 6)
