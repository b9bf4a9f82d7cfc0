"""
Composed Decode -> Index -> Match Entry Point.

The whole pipeline is a pure, synchronous computation meant to run inside
one background worker of the surrounding application. The caller submits
two raw inputs, either of which may still be unavailable (``None``), and
gets back a MatchOutcome:

- PENDING: an input has not been supplied yet; nothing was decoded
- FAILED: an input could not be decoded; the outcome carries the error
- COMPLETED: the ranked encounter list (possibly empty)

A failed outcome is terminal; the caller resubmits both inputs in full.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from encounters.config import EncountersConfig
from encounters.decoders import decode
from encounters.exceptions import DecoderError
from encounters.matching import match
from encounters.model import ChanceEncounter, InputFormat, SpaceTimeRecord, encounters_to_list

logger = logging.getLogger(__name__)


class MatchStatus(Enum):
    """State of one matching request."""

    PENDING = "pending"
    FAILED = "failed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RawInput:
    """
    Raw location history text with its explicit format tag.

    Attributes:
        content: Document text
        format: Format of the text
        name: Display name (typically the file name)
    """

    content: str
    format: InputFormat
    name: Optional[str] = None


@dataclass
class MatchOutcome:
    """
    Result of a matching request.

    Attributes:
        status: Request state
        encounters: Ranked encounters (COMPLETED only)
        error: Decoding failure (FAILED only)
        failed_input: Name of the input that failed to decode
    """

    status: MatchStatus
    encounters: List[ChanceEncounter] = field(default_factory=list)
    error: Optional[DecoderError] = None
    failed_input: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == MatchStatus.PENDING

    @property
    def is_complete(self) -> bool:
        return self.status == MatchStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "encounters": encounters_to_list(self.encounters),
            "error": str(self.error) if self.error else None,
            "failed_input": self.failed_input,
        }


def _decode_input(raw: RawInput, label: str) -> SpaceTimeRecord:
    return decode(raw.content, raw.format, source=raw.name or label)


def find_encounters(
    input_a: Optional[RawInput],
    input_b: Optional[RawInput],
    config: Optional[EncountersConfig] = None,
) -> MatchOutcome:
    """
    Decode two inputs and report their chance encounters.

    Args:
        input_a: First input (indexed), or None if not yet available
        input_b: Second input (queries), or None if not yet available
        config: Matching configuration (defaults when None)

    Returns:
        MatchOutcome; decoding errors are returned, never raised
    """
    if input_a is None or input_b is None:
        logger.debug("Matching request is waiting for input")
        return MatchOutcome(status=MatchStatus.PENDING)

    config = config or EncountersConfig()

    records = []
    for raw, label in ((input_a, "input 1"), (input_b, "input 2")):
        try:
            records.append(_decode_input(raw, label))
        except DecoderError as e:
            name = raw.name or label
            logger.warning(f"Failed to decode {name}: {e}")
            return MatchOutcome(status=MatchStatus.FAILED, error=e, failed_input=name)

    record_a, record_b = records
    encounters = match(
        record_a,
        record_b,
        max_encounters=config.max_encounters,
        node_capacity=config.node_capacity,
    )
    return MatchOutcome(status=MatchStatus.COMPLETED, encounters=encounters)
