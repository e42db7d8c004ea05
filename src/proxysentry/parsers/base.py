"""Base class for log line parsers."""

from abc import ABC, abstractmethod

from ..models import NormalizedRecord, ParserInfo


class LogParser(ABC):
    """Base class for all log format parsers.

    Subclass this to support a new log format and register an instance
    with a ParserRegistry. A parser must never raise from parse_line;
    malformed input is reported by returning None.
    """

    @property
    @abstractmethod
    def log_type(self) -> str:
        """Parser identifier (e.g., 'cloudflare_one')."""
        pass

    @property
    def supported_formats(self) -> list[str]:
        """File formats this parser reads (e.g., ['json', 'jsonl'])."""
        return []

    @property
    def version(self) -> str:
        return '1.0.0'

    @abstractmethod
    def parse_line(self, line: str, line_number: int) -> NormalizedRecord | None:
        """Parse a single raw log line.

        Args:
            line: Raw log line.
            line_number: 1-based line number, kept on the record for audit.

        Returns:
            Normalized record, or None if the line is not valid for this format.
        """
        pass

    @abstractmethod
    def validate_format(self, content: str) -> bool:
        """Return True if the file content looks like this parser's format.

        Args:
            content: Raw file content (implementations sample the first lines).

        Returns:
            True if the format is supported.
        """
        pass

    @property
    def anomaly_detection_fields(self) -> list[str]:
        """Record fields worth indexing for anomaly detection."""
        return ['source_ip', 'destination_ip', 'url', 'status_code', 'bytes_sent']

    def parser_info(self) -> ParserInfo:
        return ParserInfo(log_type=self.log_type, supported_formats=self.supported_formats, version=self.version)
