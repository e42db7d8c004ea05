"""Shared helpers for CLI commands."""

import sys

import click

from proxysentry.errors import UnknownParserError, UnsupportedFormatError
from proxysentry.models import ParseResult
from proxysentry.parsers import default_registry


EXIT_UNSUPPORTED = 2
EXIT_NO_ENTRIES = 3


def read_log_file(path: str) -> str:
    with open(path, encoding='utf-8', errors='replace') as f:
        return f.read()


def parse_path(path: str, log_type: str | None) -> ParseResult:
    """Parse a log file, exiting with EXIT_UNSUPPORTED if no parser fits."""
    content = read_log_file(path)
    registry = default_registry()
    try:
        if log_type:
            return registry.parse_file_with_parser(content, log_type, path)
        return registry.parse_file(content, path)
    except (UnsupportedFormatError, UnknownParserError) as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(EXIT_UNSUPPORTED)
