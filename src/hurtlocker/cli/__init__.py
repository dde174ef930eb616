"""CLI module - Command-line interface components."""

from hurtlocker.cli.main import main
from hurtlocker.cli.parser import parse_arguments

__all__ = [
    "main",
    "parse_arguments",
]
