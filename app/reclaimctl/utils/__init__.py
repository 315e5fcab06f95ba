"""Utility modules for reclaimctl.

This module exports commonly used utility functions.
"""

from reclaimctl.utils.formatting import (
    console,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from reclaimctl.utils.shell import CommandResult, command_exists, run_command, run_shell
from reclaimctl.utils.sizes import SizeParseError, format_size, parse_size, parse_size_strict

__all__ = [
    "CommandResult",
    "SizeParseError",
    "command_exists",
    "console",
    "err_console",
    "format_size",
    "parse_size",
    "parse_size_strict",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "run_shell",
]
