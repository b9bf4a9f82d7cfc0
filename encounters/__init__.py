"""
Chance Encounters.

Matches two independently recorded location histories and reports the
pairs of points most tightly co-located in both space and time.

Components:
- Canonical model of space-time points and records
- Decoders for Google location history JSON and GPX tracks
- A bulk-loaded 4-D R-tree under a combined spatial-temporal metric
- A nearest-pair engine producing ranked chance encounters

Example usage:
    from encounters import InputFormat, decode, match

    record_a = decode(open("a.json").read(), InputFormat.JSON)
    record_b = decode(open("b.gpx").read(), InputFormat.GPX)
    for encounter in match(record_a, record_b):
        print(encounter.distance_km, encounter.distance_s)
"""

__version__ = "0.1.0"

from encounters.config import EncountersConfig, load_config
from encounters.decoders import decode, decode_points
from encounters.exceptions import (
    DecoderError,
    DeserializeError,
    EmptyEntryError,
    EncountersError,
    FileProcessingError,
    FileReaderError,
    GeoParseError,
    InvalidPathError,
    MissingFileError,
    TimeOrderError,
    TimeParseError,
)
from encounters.index import SpaceTimeIndex
from encounters.matching import match, match_index
from encounters.model import ChanceEncounter, InputFormat, SpaceTimePoint, SpaceTimeRecord
from encounters.pipeline import MatchOutcome, MatchStatus, RawInput, find_encounters

__all__ = [
    "__version__",
    # Model
    "ChanceEncounter",
    "InputFormat",
    "SpaceTimePoint",
    "SpaceTimeRecord",
    # Operations
    "decode",
    "decode_points",
    "find_encounters",
    "match",
    "match_index",
    "SpaceTimeIndex",
    "MatchOutcome",
    "MatchStatus",
    "RawInput",
    # Configuration
    "EncountersConfig",
    "load_config",
    # Errors
    "DecoderError",
    "DeserializeError",
    "EmptyEntryError",
    "EncountersError",
    "FileProcessingError",
    "FileReaderError",
    "GeoParseError",
    "InvalidPathError",
    "MissingFileError",
    "TimeOrderError",
    "TimeParseError",
]
