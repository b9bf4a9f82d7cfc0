"""
Input file acquisition for the command line front end.

Reads location history files as UTF-8 text and resolves their format tag.
The tag comes from an explicit option or, failing that, the file
extension; file content is never inspected.
"""

import logging
from pathlib import Path
from typing import Optional

from encounters.exceptions import FileReaderError, InvalidPathError, MissingFileError
from encounters.model import InputFormat
from encounters.pipeline import RawInput

logger = logging.getLogger("encounters.files")

EXTENSION_FORMATS = {
    ".json": InputFormat.JSON,
    ".gpx": InputFormat.GPX,
}


def get_filename(path: str) -> str:
    """
    Extract the file name from a POSIX or Windows style path.

    Raises:
        InvalidPathError: If the path is empty or ends with a separator
    """
    if not path or path.endswith("/") or path.endswith("\\"):
        raise InvalidPathError(path)
    return path.replace("\\", "/").split("/")[-1]


def resolve_format(path: Path, explicit: Optional[str] = None) -> InputFormat:
    """
    Format tag for a file.

    Args:
        path: Input file path
        explicit: Format name given on the command line

    Returns:
        InputFormat

    Raises:
        ValueError: If no explicit format is given and the extension is unknown
    """
    if explicit:
        return InputFormat.parse(explicit)
    try:
        return EXTENSION_FORMATS[path.suffix.lower()]
    except KeyError:
        raise ValueError(
            f"Cannot tell the format of '{path.name}' from its extension; pass it explicitly"
        )


def read_input(path: Optional[Path], explicit_format: Optional[str] = None) -> RawInput:
    """
    Read one input file.

    Args:
        path: File to read
        explicit_format: Optional format name overriding the extension

    Returns:
        RawInput with the file's text, format and name

    Raises:
        MissingFileError: If no path was given
        InvalidPathError: If the path does not name a file
        FileReaderError: If the file is unreadable, not UTF-8, or empty
    """
    if path is None:
        raise MissingFileError()

    filename = get_filename(str(path))
    if path.is_dir():
        raise InvalidPathError(str(path))

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        raise FileReaderError(filename, "can not be parsed as string")
    except OSError as e:
        raise FileReaderError(filename, f"unable to read file ({e.strerror or e})")

    if not content.strip():
        raise FileReaderError(filename, "is empty file")

    input_format = resolve_format(path, explicit_format)
    logger.debug(f"Read {len(content)} characters from {filename} as {input_format.value}")
    return RawInput(content=content, format=input_format, name=filename)
