"""
Chance Encounters CLI Commands

This package contains all CLI subcommands for the encounters tool.

Commands:
    decode - Normalize one location history file and summarize it
    match  - Rank the chance encounters between two files
"""

from cli.commands import (
    decode,
    match,
)

__all__ = [
    "decode",
    "match",
]
