"""Cloudflare One (Zero Trust) web proxy log parser."""

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from ..models import NormalizedRecord
from .base import LogParser


logger = logging.getLogger(__name__)

# Leading base-10 integer, e.g. "200" or "200 OK"
_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def parse_int(value: Any) -> int | None:
    """Parse a base-10 integer from a log field without raising.

    Accepts ints, integral floats and strings starting with digits.
    Empty and non-numeric values give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            try:
                return int(match.group(1))
            except ValueError:
                # digit runs past the int conversion limit
                return None
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 string or a numeric epoch into an aware UTC datetime.

    Numeric epochs are told apart by magnitude: seconds, milliseconds,
    microseconds or nanoseconds (Cloudflare's default unixnano).
    """
    if value is None or isinstance(value, bool) or value == '':
        return None

    try:
        if isinstance(value, str) and value.strip().lstrip('-').isdigit():
            value = int(value.strip())

        if isinstance(value, (int, float)):
            magnitude = abs(value)
            if magnitude >= 1e17:
                seconds = value / 1e9
            elif magnitude >= 1e14:
                seconds = value / 1e6
            elif magnitude >= 1e11:
                seconds = value / 1e3
            else:
                seconds = value
            return datetime.fromtimestamp(seconds, tz=UTC)

        if isinstance(value, str):
            parsed = datetime.fromisoformat(value.strip())
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)
    except (ValueError, OverflowError, OSError):
        return None

    return None


def _text(value: Any) -> str | None:
    if value is None or value == '' or isinstance(value, (dict, list)):
        return None
    return str(value)


class CloudflareOneParser(LogParser):
    """Parses Cloudflare One web proxy logs (JSON lines, one HTTP request per line)."""

    REQUIRED_FIELDS = ('EdgeStartTimestamp', 'ClientIP', 'ClientRequestHost')
    # At least one must be present; keeps generic JSON logs from matching
    EXPECTED_FIELDS = ('ClientRequestURI', 'ClientRequestMethod', 'OriginResponseStatus')

    SAMPLE_LINES = 5
    MIN_VALID_RATIO = 0.6

    DEFAULT_PROTOCOL = 'https'

    @property
    def log_type(self) -> str:
        return 'cloudflare_one'

    @property
    def supported_formats(self) -> list[str]:
        return ['json', 'jsonl']

    @property
    def anomaly_detection_fields(self) -> list[str]:
        return [
            'source_ip',
            'destination_ip',
            'url',
            'status_code',
            'bytes_sent',
            'country',
            'asn',
            'action',
            'policy_name',
        ]

    def is_cloudflare_one_entry(self, entry: Any) -> bool:
        """Check key presence of the minimum field set on a decoded line."""
        if not isinstance(entry, dict):
            return False
        has_required = all(field in entry for field in self.REQUIRED_FIELDS)
        has_expected = any(field in entry for field in self.EXPECTED_FIELDS)
        return has_required and has_expected

    def validate_format(self, content: str) -> bool:
        lines = [line for line in content.split('\n') if line.strip()]
        if not lines:
            return False

        sample = lines[: self.SAMPLE_LINES]
        valid_count = 0
        for line in sample:
            try:
                entry = json.loads(line)
            except ValueError:
                continue
            if self.is_cloudflare_one_entry(entry):
                valid_count += 1

        return valid_count / len(sample) >= self.MIN_VALID_RATIO

    def parse_line(self, line: str, line_number: int) -> NormalizedRecord | None:
        trimmed = line.strip()
        if not trimmed:
            return None

        try:
            entry = json.loads(trimmed)
        except ValueError as e:
            logger.debug(f'Line {line_number}: not valid JSON ({e})')
            return None

        if not self.is_cloudflare_one_entry(entry):
            logger.debug(f'Line {line_number}: missing Cloudflare One fields')
            return None

        return NormalizedRecord(
            line_number=line_number,
            timestamp=parse_timestamp(entry.get('EdgeStartTimestamp')),
            source_ip=_text(entry.get('ClientIP')),
            destination_ip=_text(entry.get('OriginIP')),
            url=self.extract_url(entry),
            user_agent=_text(entry.get('UserAgent')),
            status_code=self.extract_status_code(entry),
            bytes_sent=self.extract_bytes_sent(entry),
            method=_text(entry.get('ClientRequestMethod')),
            country=_text(entry.get('ClientCountry')),
            asn=_text(entry.get('ClientASN')),
            action=_text(entry.get('Action')),
            policy_name=_text(entry.get('PolicyName')),
            raw_data=trimmed,
            original_entry=entry,
        )

    def extract_url(self, entry: dict) -> str | None:
        host = _text(entry.get('ClientRequestHost'))
        uri = _text(entry.get('ClientRequestURI'))
        if host and uri:
            protocol = _text(entry.get('ClientRequestProtocol')) or self.DEFAULT_PROTOCOL
            return f'{protocol}://{host}{uri}'
        return None

    def extract_status_code(self, entry: dict) -> int | None:
        # Origin status wins; 0 means the request never reached the origin
        status = entry.get('OriginResponseStatus') or entry.get('EdgeResponseStatus')
        return parse_int(status) if status else None

    def extract_bytes_sent(self, entry: dict) -> int | None:
        sent = entry.get('EdgeResponseBytes') or entry.get('OriginResponseBytes')
        return parse_int(sent) if sent else None
