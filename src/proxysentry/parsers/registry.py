"""Parser registry with log format auto-detection."""

import logging
from datetime import UTC, datetime

from .. import prometheus as prom
from ..errors import UnknownParserError, UnsupportedFormatError
from ..models import NormalizedRecord, ParseMetadata, ParseResult
from .base import LogParser
from .cloudflare_one import CloudflareOneParser


logger = logging.getLogger(__name__)


class ParserRegistry:
    """
    Ordered set of log parsers keyed by log type.

    Auto-detection tries parsers in registration order and picks the first
    match, so content that fits several formats goes to the earliest one.
    """

    def __init__(self, parsers: list[LogParser] | None = None):
        self._parsers: dict[str, LogParser] = {}
        for parser in parsers or []:
            self.register(parser)

    def register(self, parser: LogParser):
        """Register a parser under its log type (re-registering replaces it in place)."""
        self._parsers[parser.log_type] = parser

    def get_parser(self, log_type: str) -> LogParser | None:
        return self._parsers.get(log_type)

    def available_parsers(self) -> list[str]:
        return list(self._parsers)

    def parser_stats(self) -> dict:
        """Statistics about the registered parsers."""
        return {
            'total_parsers': len(self._parsers),
            'available_types': self.available_parsers(),
            'parsers': {log_type: parser.parser_info().model_dump() for log_type, parser in self._parsers.items()},
        }

    def auto_detect(self, content: str) -> LogParser | None:
        """Return the first registered parser that accepts the content, or None."""
        for log_type, parser in self._parsers.items():
            try:
                if parser.validate_format(content):
                    logger.info(f'Auto-detected log format: {log_type}')
                    prom.format_detections_total.labels(log_type=log_type).inc()
                    return parser
            except Exception as e:
                logger.warning(f'Parser {log_type} validation failed: {e}')

        logger.warning('No suitable parser found for the provided log format')
        prom.format_detections_total.labels(log_type='unsupported').inc()
        return None

    def parse_file(self, content: str, filename: str) -> ParseResult:
        """
        Parse file content with auto-detected parser.

        Args:
            content: Full file content
            filename: Original filename (reported back in metadata)

        Returns:
            ParseResult with records and metadata

        Raises:
            UnsupportedFormatError: If no registered parser recognizes the content
        """
        if not content.strip():
            # Nothing to detect; report an empty parse instead of a format error
            return ParseResult(
                parser=None,
                records=[],
                metadata=ParseMetadata(
                    total_lines=len(content.split('\n')) if content else 0,
                    valid_entries=0,
                    invalid_entries=0,
                    filename=filename,
                    log_type=None,
                    parse_date=datetime.now(UTC),
                ),
            )

        parser = self.auto_detect(content)
        if parser is None:
            raise UnsupportedFormatError(filename)
        return self._parse_with(parser, content, filename)

    def parse_file_with_parser(self, content: str, log_type: str, filename: str) -> ParseResult:
        """
        Parse file content with an explicitly chosen parser.

        Raises:
            UnknownParserError: If log_type is not registered
        """
        parser = self.get_parser(log_type)
        if parser is None:
            raise UnknownParserError(log_type, self.available_parsers())
        return self._parse_with(parser, content, filename)

    def _parse_with(self, parser: LogParser, content: str, filename: str) -> ParseResult:
        lines = content.split('\n') if content else []
        records: list[NormalizedRecord] = []
        invalid_entries = 0

        logger.info(f'Parsing {len(lines)} lines with {parser.log_type} parser')

        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue

            try:
                record = parser.parse_line(line, line_number)
            except Exception as e:
                logger.warning(f'Failed to parse line {line_number}: {e}')
                record = None

            if record is None:
                invalid_entries += 1
            else:
                records.append(record)

        prom.lines_parsed_total.labels(status='valid').inc(len(records))
        prom.lines_parsed_total.labels(status='invalid').inc(invalid_entries)
        logger.info(f'Parsing complete: {len(records)} valid entries, {invalid_entries} invalid entries')

        return ParseResult(
            parser=parser.parser_info(),
            records=records,
            metadata=ParseMetadata(
                total_lines=len(lines),
                valid_entries=len(records),
                invalid_entries=invalid_entries,
                filename=filename,
                log_type=parser.log_type,
                parse_date=datetime.now(UTC),
            ),
        )


def default_registry() -> ParserRegistry:
    """Get a registry with all built-in parsers.

    Returns:
        ParserRegistry with parsers in detection order.
    """
    return ParserRegistry([CloudflareOneParser()])
