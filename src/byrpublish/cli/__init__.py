"""
CLI Module - Command line interface for byrpublish.
"""

from .app import create_parser, main, run
from .exit_codes import ExitCode


__all__ = ["ExitCode", "create_parser", "main", "run"]
