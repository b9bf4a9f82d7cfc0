"""
Chance Encounters CLI Package

Command-line interface for matching two location histories.

Usage:
    encounters decode Timeline.json
    encounters match Timeline.json ride.gpx --limit 5
    encounters info
"""

__version__ = "0.1.0"
__author__ = "Chance Encounters Team"

from cli.main import app

__all__ = ["app", "__version__"]
