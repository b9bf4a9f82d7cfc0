"""
Chance Encounters CLI - Main Entry Point

Command-line interface for matching two location histories.
Built with Click for robust argument parsing and help generation.
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click
import yaml

from encounters import __version__
from encounters.config import EncountersConfig, load_config

# Configure logging for CLI
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("encounters")


class EncountersContext:
    """Context object for passing global options to subcommands."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_path = config_path
        self._config: Optional[EncountersConfig] = None

        # Configuration errors surface here, before any command runs
        config = self.config

        # Configure logging based on verbosity
        if quiet:
            logger.setLevel(logging.WARNING)
        elif verbose:
            logger.setLevel(logging.DEBUG)
        else:
            logger.setLevel(config.log_level)

    @property
    def config(self) -> EncountersConfig:
        """Configuration from file, defaults and environment; loaded on construction."""
        if self._config is None:
            self._config = load_config(str(self.config_path) if self.config_path else None)
            if self.verbose:
                logger.setLevel(logging.DEBUG)
                logger.debug(f"Effective configuration: {self._config.to_dict()}")
        return self._config


# Custom Click group with enhanced help formatting
class EncountersGroup(click.Group):
    """Custom Click group with improved help formatting."""

    def format_help(self, ctx, formatter):
        """Format help with custom banner and examples."""
        formatter.write_paragraph()
        formatter.write_text("Chance Encounters - Location History Matching")
        formatter.write_paragraph()
        formatter.write_text(
            "Find where and when two location histories came closest."
        )
        formatter.write_paragraph()

        super().format_help(ctx, formatter)

        formatter.write_paragraph()
        formatter.write_text("Examples:")
        formatter.indent()

        examples = [
            "# Summarize a Google location history export",
            "encounters decode Timeline.json",
            "",
            "# Top 10 encounters between a timeline and a GPX track",
            "encounters match Timeline.json ride.gpx",
            "",
            "# Machine readable output, explicit formats",
            "encounters match a.txt b.txt --format1 json --format2 gpx --output json",
        ]

        for line in examples:
            formatter.write_text(line)

        formatter.dedent()


pass_context = click.make_pass_decorator(EncountersContext, ensure=True)


@click.group(cls=EncountersGroup)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output (debug logging).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Quiet mode (only warnings and errors).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
)
@click.version_option(
    version=__version__,
    prog_name="encounters",
    message="%(prog)s version %(version)s - Chance Encounters CLI",
)
@click.pass_context
def app(ctx, verbose: bool, quiet: bool, config_path: Optional[Path]):
    """
    Chance Encounters CLI - Location History Matching

    Decodes Google location history (JSON) and GPX tracks and reports the
    pairs of points closest in both space and time.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")

    try:
        ctx.obj = EncountersContext(
            verbose=verbose,
            quiet=quiet,
            config_path=config_path,
        )
    except (ValueError, yaml.YAMLError) as e:
        raise click.UsageError(f"Invalid configuration: {e}")


def register_commands():
    """Register all subcommands."""
    from cli.commands import decode, match

    app.add_command(decode.decode)
    app.add_command(match.match)


@app.command("info")
@pass_context
def info(ctx):
    """Display system information and configuration."""
    import platform
    import importlib.metadata

    click.echo("\n=== Chance Encounters System Info ===\n")

    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.system()} {platform.release()}")

    click.echo("\n--- Package Versions ---")
    packages = ["numpy", "click", "pyyaml"]
    for pkg in packages:
        try:
            version = importlib.metadata.version(pkg)
            click.echo(f"  {pkg}: {version}")
        except importlib.metadata.PackageNotFoundError:
            click.echo(f"  {pkg}: not installed")

    click.echo("\n--- Configuration ---")
    for key, value in ctx.config.to_dict().items():
        click.echo(f"  {key}: {value}")

    click.echo()


register_commands()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error(f"Error: {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
