"""
Custom Exceptions for Chance Encounter Matching.

Provides a hierarchy of exceptions for the failure modes of the
decode -> index -> match pipeline. Decoding failures are fatal to the
decode call that raised them; file acquisition failures belong to the
surrounding application (CLI) and never reach the matching core.
"""


class EncountersError(Exception):
    """
    Base exception for all chance encounter failures.

    Attributes:
        message: Human-readable error description
        details: Additional context about the failure
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class DecoderError(EncountersError):
    """
    Raw location history could not be turned into a record.

    Subclasses set ``category``, which prefixes the rendered message so the
    caller can show a single line without inspecting the type.
    """

    category = "Decoder Error"

    def __init__(self, detail: str, details: dict = None):
        super().__init__(f"{self.category}: {detail}", details)
        self.detail = detail


class DeserializeError(DecoderError):
    """
    Input is not structurally valid JSON/XML, or lacks a required field.
    """

    category = "Deserialize Error"


class EmptyEntryError(DecoderError):
    """
    A timeline entry is well formed but carries no recognized content.

    Raised for flat timeline entries that have none of ``activity``,
    ``visit`` or ``timelinePath``, and for timeline objects that have
    neither ``placeVisit`` nor ``activitySegment``.
    """

    category = "Empty Entry Error"


class TimeParseError(DecoderError):
    """Unparsable timestamp or minute offset."""

    category = "UTC Parsing Error"


class GeoParseError(DecoderError):
    """Unparsable coordinate string or E7 value."""

    category = "Geo Parse Error"


class TimeOrderError(DecoderError):
    """
    Decoded points violate the record ordering invariant.

    Attributes:
        index: Position of the first offending point
    """

    category = "Time Order Error"

    def __init__(self, detail: str, index: int = None):
        super().__init__(detail, {"index": index} if index is not None else None)
        self.index = index


class FileProcessingError(EncountersError):
    """
    Base exception for acquiring raw input text.

    Raised by the command line front end, never by the matching core.
    """


class InvalidPathError(FileProcessingError):
    """
    Path does not name a file.

    Attributes:
        path: The rejected path
    """

    def __init__(self, path: str):
        super().__init__(f"Invalid path: {path}")
        self.path = path


class MissingFileError(FileProcessingError):
    """An input file was not supplied."""

    def __init__(self, message: str = "Please provide both files"):
        super().__init__(message)


class FileReaderError(FileProcessingError):
    """
    File exists but cannot be read as UTF-8 text, or is empty.

    Attributes:
        filename: Name of the file that failed
        reason: Explanation of the failure
    """

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason
