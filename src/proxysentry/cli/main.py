"""Main CLI entry point with command groups"""

import click

from proxysentry.__version__ import __version__
from proxysentry.cli.analyze import analyze_command
from proxysentry.cli.formats import formats_command
from proxysentry.cli.parse import parse_command
from proxysentry.utils import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name='proxysentry')
def cli():
    """
    proxysentry - anomaly detection for web proxy logs.

    \b
    Commands:
      proxysentry parse <path>      Parse a log file into normalized records
      proxysentry analyze <path>    Statistical + model-assisted anomaly detection
      proxysentry formats           List supported log formats

    \b
    Configuration (environment):
      PROXYSENTRY_API_KEY / OPENAI_API_KEY   Model API key
      PROXYSENTRY_MODEL                      Model name (default: gpt-4)
      PROXYSENTRY_API_BASE                   OpenAI-compatible endpoint
      PROXYSENTRY_MODEL_TIMEOUT              Seconds to wait for the model
      PROXYSENTRY_AI_ENABLED                 Set to false to skip the model
      PROXYSENTRY_LOG_LEVEL                  Logging level (default: WARNING)
    """
    setup_logging()


cli.add_command(parse_command, name='parse')
cli.add_command(analyze_command, name='analyze')
cli.add_command(formats_command, name='formats')


def main():
    cli()


if __name__ == '__main__':
    main()
