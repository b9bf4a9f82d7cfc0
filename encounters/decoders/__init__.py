"""
Location History Decoders.

Turn raw text in one of the supported formats into canonical points and
records. The format tag is always supplied by the caller; content is never
inspected to guess it.

Example usage:
    from encounters.decoders import decode
    from encounters.model import InputFormat

    record = decode(text, InputFormat.GPX)
    print(len(record), record.time_span())
"""

import logging
from typing import List, Optional, Union

from encounters.decoders.gpx import decode_gpx
from encounters.decoders.parsing import (
    parse_e7,
    parse_geo,
    parse_offset_minutes,
    parse_timestamp,
)
from encounters.decoders.timeline import decode_timeline_json
from encounters.model import InputFormat, SpaceTimePoint, SpaceTimeRecord

logger = logging.getLogger(__name__)

_DECODERS = {
    InputFormat.JSON: decode_timeline_json,
    InputFormat.GPX: decode_gpx,
}


def decode_points(text: str, input_format: Union[InputFormat, str]) -> List[SpaceTimePoint]:
    """
    Decode raw text into an ordered point list.

    Args:
        text: Raw document text
        input_format: Format tag (InputFormat or its name)

    Returns:
        Points in non-decreasing time order

    Raises:
        DecoderError: If the document is malformed in any way
        ValueError: If the format tag is unknown
    """
    if not isinstance(input_format, InputFormat):
        input_format = InputFormat.parse(input_format)
    return _DECODERS[input_format](text)


def decode(
    text: str,
    input_format: Union[InputFormat, str],
    source: Optional[str] = None,
) -> SpaceTimeRecord:
    """
    Decode raw text into a validated record.

    Args:
        text: Raw document text
        input_format: Format tag (InputFormat or its name)
        source: Optional input name carried on the record

    Returns:
        SpaceTimeRecord

    Raises:
        DecoderError: If the document is malformed or its points are out of
            time order
    """
    points = decode_points(text, input_format)
    record = SpaceTimeRecord(points, source=source)
    logger.debug(f"Decoded {len(record)} points from {source or 'input'} ({input_format})")
    return record


__all__ = [
    "decode",
    "decode_points",
    "decode_gpx",
    "decode_timeline_json",
    "parse_e7",
    "parse_geo",
    "parse_offset_minutes",
    "parse_timestamp",
]
