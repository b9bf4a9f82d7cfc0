"""
Match Command - Rank the chance encounters between two files.

Usage:
    encounters match Timeline.json ride.gpx
    encounters match a.json b.json --limit 5 --output json
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from cli.commands.decode import FORMAT_CHOICES, format_duration
from cli.files import read_input
from encounters.exceptions import EncountersError
from encounters.pipeline import MatchOutcome, find_encounters

logger = logging.getLogger("encounters.match")


@click.command("match")
@click.argument("path1", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("path2", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--format1",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Format of the first file (default: from extension).",
)
@click.option(
    "--format2",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Format of the second file (default: from extension).",
)
@click.option(
    "--limit",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of encounters (default: from configuration, 10).",
)
@click.option(
    "--output",
    "-o",
    "output_format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def match(
    ctx,
    path1: Path,
    path2: Path,
    format1: Optional[str],
    format2: Optional[str],
    limit: Optional[int],
    output_format: str,
):
    """
    Find the closest space-time encounters between two location histories.

    The first file is indexed and every point of the second file is
    matched against it. Each point is used in at most one encounter.

    \b
    Examples:
        encounters match Timeline.json ride.gpx
        encounters match a.json b.json --limit 3 --output json
    """
    try:
        input_a = read_input(path1, format1)
        input_b = read_input(path2, format2)
    except ValueError as e:
        raise click.UsageError(str(e))
    except EncountersError as e:
        raise click.ClickException(str(e))

    config = ctx.config
    if limit is not None:
        config.max_encounters = limit
        logger.debug(f"Result limit overridden: {limit}")

    outcome = find_encounters(input_a, input_b, config=config)
    if outcome.error is not None:
        raise click.ClickException(f"{outcome.failed_input}: {outcome.error}")

    if output_format == "json":
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        output_text_encounters(outcome, input_a.name, input_b.name)


def output_text_encounters(outcome: MatchOutcome, name1: str, name2: str):
    """Output ranked encounters as formatted text."""
    click.echo(f"\n{'=' * 50}")
    click.echo(f"  Chance Encounters")
    click.echo(f"{'=' * 50}")
    click.echo(f"\n  {name1}  <->  {name2}")

    if not outcome.encounters:
        click.echo("\n  No encounters found.")
        click.echo()
        return

    for rank, encounter in enumerate(outcome.encounters, start=1):
        p1, p2 = encounter.point1, encounter.point2
        click.echo(
            f"\n  #{rank}: {encounter.distance_km:.3f} km apart, "
            f"{format_duration(encounter.distance_s)} apart in time"
        )
        click.echo(
            f"    1: ({p1.latitude:.6f}, {p1.longitude:.6f}) "
            f"{p1.start_time.strftime('%Y-%m-%d %H:%M:%S')} - {p1.end_time.strftime('%H:%M:%S')}"
        )
        click.echo(
            f"    2: ({p2.latitude:.6f}, {p2.longitude:.6f}) "
            f"{p2.start_time.strftime('%Y-%m-%d %H:%M:%S')} - {p2.end_time.strftime('%H:%M:%S')}"
        )

    click.echo()
