"""
Scalar parsers shared by the location history decoders.

Every parser raises a DecoderError subclass on malformed input so that a
single bad value aborts the whole decode.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Tuple

from encounters.exceptions import DeserializeError, GeoParseError, TimeOrderError, TimeParseError
from encounters.model import SpaceTimePoint

E7_SCALE = 1e7
# E7 values this short are almost certainly plain degrees
E7_MIN_DIGITS = 8

GEO_PREFIX = "geo:"


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp into a UTC datetime.

    Accepts RFC3339 strings with fractional seconds and an offset
    ("2015-01-25T09:11:16.547-08:00", "...Z") and millisecond epoch
    values given as digit strings or integers ("1422177076547").

    Args:
        value: Raw timestamp value

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TimeParseError: If the value is not a recognizable timestamp
    """
    if isinstance(value, bool):
        raise TimeParseError(f"invalid timestamp {value!r}")
    if isinstance(value, int):
        return _from_epoch_ms(value)
    if not isinstance(value, str):
        raise TimeParseError(f"invalid timestamp {value!r}")

    text = value.strip()
    if text.lstrip("-").isdigit():
        try:
            millis = int(text)
        except ValueError as e:
            raise TimeParseError(f"epoch milliseconds too long ({len(text)} digits)") from e
        return _from_epoch_ms(millis)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00").replace("z", "+00:00"))
    except ValueError as e:
        raise TimeParseError(f"invalid timestamp {value!r}: {e}") from e
    if parsed.tzinfo is None:
        raise TimeParseError(f"timestamp {value!r} has no UTC offset")
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as e:
        raise TimeParseError(f"timestamp {value!r} is out of range in UTC") from e


def _from_epoch_ms(millis: int) -> datetime:
    try:
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=millis)
    except OverflowError as e:
        raise TimeParseError("epoch milliseconds out of range") from e


def parse_offset_minutes(value: Any) -> int:
    """
    Parse an integer minute offset ("12" or 12).

    Raises:
        TimeParseError: If the value is not an integer
    """
    if isinstance(value, bool):
        raise TimeParseError(f"invalid minute offset {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise TimeParseError(f"invalid minute offset {value!r}") from e


def offset_time(start: datetime, minutes: int) -> datetime:
    """
    Instant a number of minutes after start.

    Raises:
        TimeParseError: If the result falls outside the datetime range
    """
    try:
        return start + timedelta(minutes=minutes)
    except OverflowError as e:
        raise TimeParseError(f"minute offset {minutes} from {start.isoformat()} is out of range") from e


def parse_e7(value: Any, field_name: str = "coordinate") -> float:
    """
    Convert an E7-encoded coordinate (degrees * 1e7) to degrees.

    Args:
        value: Signed integer (or integer string)
        field_name: Field name for error messages

    Returns:
        Coordinate in degrees

    Raises:
        GeoParseError: If the value is not an integer or is too short to
            be E7-scaled
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise GeoParseError(f"{field_name} is not an E7 integer: {value!r}")
    try:
        raw = int(value)
    except (TypeError, ValueError) as e:
        raise GeoParseError(f"{field_name} is not an E7 integer: {value!r}") from e

    if len(str(abs(raw))) < E7_MIN_DIGITS:
        raise GeoParseError(f"{field_name} is not E7 scaled: {value!r}")
    return raw / E7_SCALE


def parse_geo(value: Any) -> Tuple[float, float]:
    """
    Parse a "geo:<lat>,<lon>" location string.

    The "geo:" prefix is optional and only allowed on the latitude.

    Returns:
        (latitude, longitude) in degrees

    Raises:
        GeoParseError: If the string is malformed
    """
    if not isinstance(value, str):
        raise GeoParseError(f"location is not a string: {value!r}")

    parts = value.strip().split(",")
    if len(parts) != 2:
        raise GeoParseError(f"expected 'geo:<lat>,<lon>', got {value!r}")

    lat_text, lon_text = parts[0].strip(), parts[1].strip()
    if lat_text.startswith(GEO_PREFIX):
        lat_text = lat_text[len(GEO_PREFIX):]

    try:
        latitude = float(lat_text)
        longitude = float(lon_text)
    except ValueError as e:
        raise GeoParseError(f"invalid coordinates in {value!r}") from e

    return check_coordinates(latitude, longitude)


def check_coordinates(latitude: float, longitude: float) -> Tuple[float, float]:
    """
    Reject non-finite or out-of-range coordinates.

    Raises:
        GeoParseError: If latitude is outside [-90, 90] or longitude outside
            [-180, 180]
    """
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise GeoParseError(f"non-finite coordinates ({latitude}, {longitude})")
    if not -90.0 <= latitude <= 90.0:
        raise GeoParseError(f"latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise GeoParseError(f"longitude out of range: {longitude}")
    return latitude, longitude


def require(obj: Any, key: str, context: str) -> Any:
    """
    Fetch a required member of a JSON object.

    Raises:
        DeserializeError: If obj is not an object or lacks the key
    """
    if not isinstance(obj, dict):
        raise DeserializeError(f"{context} is not an object")
    if key not in obj or obj[key] is None:
        raise DeserializeError(f"{context} is missing required field '{key}'")
    return obj[key]


def make_point(coordinate: Tuple[float, float], start: datetime, end: datetime) -> SpaceTimePoint:
    """
    Build a point, reporting an inverted interval as a decode failure.

    Raises:
        TimeOrderError: If start is after end
    """
    if start > end:
        raise TimeOrderError(
            f"interval starts at {start.isoformat()} after it ends at {end.isoformat()}"
        )
    latitude, longitude = coordinate
    return SpaceTimePoint(latitude=latitude, longitude=longitude, start_time=start, end_time=end)
