"""CLI command listing the supported log formats."""

import json

import click

from proxysentry.parsers import default_registry


@click.command('formats')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
def formats_command(json_output: bool):
    """List registered log parsers in detection order."""
    stats = default_registry().parser_stats()

    if json_output:
        click.echo(json.dumps(stats, indent=2))
        return

    for log_type, info in stats['parsers'].items():
        formats = ', '.join(info['supported_formats']) or '-'
        click.echo(f"{log_type}  (formats: {formats}, version {info['version']})")
