"""CLI command for anomaly analysis of a log file."""

import json
import sys

import anyio
import click
from prometheus_client import generate_latest

from proxysentry.analyze import AnomalyAnalyzer, generate_timeline, mark_anomalous_records
from proxysentry.cli.common import EXIT_NO_ENTRIES, parse_path
from proxysentry.inference import DisabledModelClient, client_from_env


@click.command('analyze')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--log-type', '-t', default=None, help='Use this parser instead of auto-detection')
@click.option('--no-ai', is_flag=True, help='Skip the model call, statistical analysis only')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for the model (default: 60)')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--metrics', is_flag=True, help='Print Prometheus metrics to stderr when done')
def analyze_command(
    path: str,
    log_type: str | None,
    no_ai: bool,
    timeout: float | None,
    json_output: bool,
    metrics: bool,
):
    """Detect anomalies in a web proxy log file.

    Runs the frequency heuristics over all entries, sends a bounded sample
    to the configured language model and merges both sets of findings.
    Without a reachable model the statistical findings are reported alone.

    \b
    Examples:
        proxysentry analyze proxy.jsonl
        proxysentry analyze proxy.jsonl --no-ai --json
        PROXYSENTRY_MODEL=gpt-4o proxysentry analyze proxy.jsonl --timeout 30

    \b
    Exit codes:
        0  analysis completed (possibly degraded)
        2  unsupported log format or unknown --log-type
        3  no valid log entries in the file
    """
    parsed = parse_path(path, log_type)
    records = parsed.records

    if not records:
        click.echo(f'No valid log entries found in {path}', err=True)
        sys.exit(EXIT_NO_ENTRIES)

    client = DisabledModelClient() if no_ai else client_from_env()
    analyzer = AnomalyAnalyzer(client, timeout=timeout)
    result = anyio.run(analyzer.analyze, records)

    # Flag matching records, then recount the timeline with those flags
    marked = mark_anomalous_records(records, result.anomalies)
    result = result.model_copy(update={'timeline': generate_timeline(marked)})
    anomalous_lines = [record.line_number for record in marked if record.is_anomaly]

    if json_output:
        output = {
            'metadata': parsed.metadata.model_dump(mode='json'),
            'analysis': result.model_dump(mode='json'),
            'anomalous_lines': anomalous_lines,
        }
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo(parsed.to_cli())
        click.echo('')
        click.echo(result.to_cli(colorize=sys.stdout.isatty()))
        click.echo('')
        click.echo(f'Anomalous entries: {len(anomalous_lines)} of {len(records)}')

    if metrics:
        click.echo(generate_latest().decode('utf-8'), err=True)
