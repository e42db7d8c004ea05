"""CLI command for parsing log files."""

import json

import click

from proxysentry.cli.common import parse_path


@click.command('parse')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--log-type', '-t', default=None, help='Use this parser instead of auto-detection')
@click.option('--json', 'json_output', is_flag=True, help='Output metadata and records as JSON')
def parse_command(path: str, log_type: str | None, json_output: bool):
    """Parse a log file into normalized records.

    \b
    Examples:
        proxysentry parse proxy.jsonl
        proxysentry parse proxy.jsonl --log-type cloudflare_one --json
    """
    result = parse_path(path, log_type)

    if json_output:
        output = result.model_dump(mode='json', exclude={'records': {'__all__': {'original_entry'}}})
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo(result.to_cli())
