"""
GPX Track Decoder.

Reads ``<gpx><trk><trkseg><trkpt lat lon><time>`` documents. Each track
point is held until the next point of the same segment; the last point of a
segment is instantaneous. Namespaces (GPX 1.0 / 1.1) are ignored.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, List

from encounters.decoders.parsing import check_coordinates, make_point, parse_timestamp
from encounters.exceptions import DeserializeError, GeoParseError
from encounters.model import SpaceTimePoint

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    return (child for child in element if _local_name(child.tag) == name)


def _coordinate(trkpt: ET.Element, attribute: str, context: str) -> float:
    value = trkpt.get(attribute)
    if value is None:
        raise DeserializeError(f"{context} is missing attribute '{attribute}'")
    try:
        return float(value)
    except ValueError as e:
        raise GeoParseError(f"{context} has invalid {attribute} {value!r}") from e


def decode_gpx(text: str) -> List[SpaceTimePoint]:
    """
    Decode a GPX document into points.

    Args:
        text: Raw GPX XML

    Returns:
        Points of every track segment, in document order

    Raises:
        DecoderError: On malformed XML, coordinates or timestamps
    """
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as e:
        raise DeserializeError(f"invalid XML: {e}") from e

    if _local_name(root.tag) != "gpx":
        raise DeserializeError(f"expected <gpx> root element, got <{_local_name(root.tag)}>")

    points: List[SpaceTimePoint] = []
    segments = 0
    for t, track in enumerate(_children(root, "trk")):
        for s, segment in enumerate(_children(track, "trkseg")):
            segments += 1
            trkpts = list(_children(segment, "trkpt"))
            times = []
            coordinates = []
            for p, trkpt in enumerate(trkpts):
                context = f"trk[{t}]/trkseg[{s}]/trkpt[{p}]"
                coordinates.append(
                    check_coordinates(
                        _coordinate(trkpt, "lat", context),
                        _coordinate(trkpt, "lon", context),
                    )
                )
                time_element = next(_children(trkpt, "time"), None)
                if time_element is None or not (time_element.text or "").strip():
                    raise DeserializeError(f"{context} has no <time>")
                times.append(parse_timestamp(time_element.text))

            for i, coordinate in enumerate(coordinates):
                end = times[i + 1] if i + 1 < len(times) else times[i]
                points.append(make_point(coordinate, times[i], end))

    logger.debug(f"Decoded {len(points)} GPX points from {segments} track segments")
    return points
