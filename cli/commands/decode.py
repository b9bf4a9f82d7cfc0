"""
Decode Command - Normalize one location history file.

Usage:
    encounters decode Timeline.json
    encounters decode ride.gpx --output json
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from cli.files import read_input
from encounters.decoders import decode as decode_record
from encounters.exceptions import EncountersError
from encounters.model import InputFormat, SpaceTimeRecord

logger = logging.getLogger("encounters.decode")

FORMAT_CHOICES = [f.value for f in InputFormat]


@click.command("decode")
@click.argument(
    "path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--format",
    "-f",
    "input_format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Input format (default: from file extension).",
)
@click.option(
    "--output",
    "-o",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
def decode(path: Path, input_format: Optional[str], output_format: str):
    """
    Decode a location history file into canonical points.

    Reports the number of points and the covered time span, or with
    --output json the full canonical point list.

    \b
    Examples:
        encounters decode Timeline.json
        encounters decode export.txt --format json --output json
    """
    try:
        raw = read_input(path, input_format)
        record = decode_record(raw.content, raw.format, source=raw.name)
    except ValueError as e:
        raise click.UsageError(str(e))
    except EncountersError as e:
        raise click.ClickException(str(e))

    logger.debug(f"Decoded {len(record)} points from {raw.name}")

    if output_format == "json":
        click.echo(json.dumps(record.to_dict(), indent=2))
    else:
        output_text_summary(record, raw.format)


def output_text_summary(record: SpaceTimeRecord, input_format: InputFormat):
    """Output record summary as formatted text."""
    click.echo(f"\n{'=' * 50}")
    click.echo(f"  Location History: {record.source}")
    click.echo(f"{'=' * 50}")

    click.echo(f"\n  Format: {input_format.value}")
    click.echo(f"  Points: {len(record)}")

    span = record.time_span()
    if span is None:
        click.echo("  Time span: (empty)")
    else:
        start, end = span
        click.echo(f"  First: {start.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        click.echo(f"  Last:  {end.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        click.echo(f"  Covered: {format_duration((end - start).total_seconds())}")

    click.echo()


def format_duration(seconds: float) -> str:
    """Format a duration for display."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        return f"{seconds / 60:.1f}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"
